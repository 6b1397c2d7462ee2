"""Base classes for deterministic intent handlers."""
from abc import ABC, abstractmethod
from typing import List, Optional

from logchat.core.config import AnalyticsConfig
from logchat.models.records import ActivityLog, Answer
from logchat.services.intent.classifier import Intent
from logchat.services.intent.context import QueryContext
from logchat.services.store import ActivityStore
from logchat.services.time_window import TimeWindow


class IntentHandler(ABC):
    """Abstract base class for intent handlers.

    Handlers only read the activity store; they never call the network, so
    they cannot fail with an upstream error from the AI services.
    """

    # Intents this handler can answer
    intents: List[Intent] = []

    def __init__(self, store: ActivityStore, analytics: Optional[AnalyticsConfig] = None):
        self.store = store
        self.analytics = analytics or AnalyticsConfig()

    @abstractmethod
    def handle(self, ctx: QueryContext) -> Answer:
        """
        Answer the query deterministically.

        Args:
            ctx: QueryContext with the normalized query, window and area

        Returns:
            Answer with the rendered text and no sources
        """
        pass

    def _answer(self, text: str) -> Answer:
        """Deterministic answers never cite document chunks."""
        return Answer(text=text, sources=[])

    def _window_logs(
        self,
        ctx: QueryContext,
        window: Optional[TimeWindow] = None,
        area: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[ActivityLog]:
        """The user's logs inside a window, newest first."""
        window = window or ctx.window
        return self.store.fetch_logs(ctx.user_id, since=window.since, area=area, limit=limit)
