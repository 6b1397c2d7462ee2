"""Chat Pipeline - window, area and intent resolution plus dispatch.

This is the main entry point for answering a question. It:
1. Validates and normalizes the query
2. Resolves the time window and the life area from the same text
3. Classifies the intent and dispatches to a deterministic handler
4. Otherwise runs Retrieval and Generation Fallback (when the AI capability
   is wired) or answers without any outbound call (private mode)
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

from logchat.core.config import Settings
from logchat.core.errors import ValidationError
from logchat.core.logging import logger
from logchat.models.records import Answer
from logchat.services.ai import AIServices
from logchat.services.areas import resolve_area
from logchat.services.chat.handlers.base import IntentHandler, QueryContext
from logchat.services.generation import GenerationFallback
from logchat.services.intent.classifier import Intent, IntentClassifier, is_data_question, normalize
from logchat.services.retrieval import RetrievalFallback
from logchat.services.store import ActivityStore
from logchat.services.time_window import extract_window
from logchat.services.vector_store import DocumentIndex

MAX_QUERY_CHARS = 2000

PRIVATE_MODE_MESSAGE = (
    "KI‑Modus ist deaktiviert. Stelle konkrete Datenfragen "
    "(z. B. \"Wie viele Aktivitäten in den letzten 7 Tagen?\") oder nutze die App‑Ansichten."
)


class HandlerRegistry:
    """Registry for intent handlers.

    Handlers are registered as instances with the intents they declare.
    The pipeline looks up handlers by intent.
    """

    def __init__(self):
        self._handlers: Dict[Intent, IntentHandler] = {}

    def register(self, handler: IntentHandler) -> None:
        """Register a handler instance for its declared intents."""
        for intent in handler.intents:
            if intent in self._handlers:
                logger.warning(
                    f"Intent '{intent.value}' already registered to {self._handlers[intent].__class__.__name__}, "
                    f"overwriting with {handler.__class__.__name__}"
                )
            self._handlers[intent] = handler
            logger.debug(f"Registered handler {handler.__class__.__name__} for intent '{intent.value}'")

    def get_handler(self, intent: Intent) -> Optional[IntentHandler]:
        """Get the handler for a given intent."""
        return self._handlers.get(intent)

    def list_handlers(self) -> Dict[str, str]:
        """List all registered handlers and their intents."""
        return {intent.value: handler.__class__.__name__ for intent, handler in self._handlers.items()}

    def clear(self) -> None:
        self._handlers.clear()


def default_handlers(store: ActivityStore, settings: Settings) -> List[IntentHandler]:
    """One instance of every deterministic handler."""
    from logchat.services.chat.handlers.activity import (
        CountHandler,
        RecentListHandler,
        SpecificDateHandler,
        StreakHandler,
    )
    from logchat.services.chat.handlers.areas import FocusHandler, SummarizeAreaHandler, TopAreasHandler
    from logchat.services.chat.handlers.learned import LearnedFromSourceHandler
    from logchat.services.chat.handlers.metrics import (
        AverageDurationHandler,
        TotalDurationHandler,
        XpSumHandler,
    )

    classes = [
        StreakHandler, SpecificDateHandler, CountHandler, XpSumHandler,
        AverageDurationHandler, TotalDurationHandler, TopAreasHandler, FocusHandler,
        SummarizeAreaHandler, LearnedFromSourceHandler, RecentListHandler,
    ]
    return [cls(store, settings.analytics) for cls in classes]


class ChatPipeline:
    """Answers one user's question; holds no per-request state.

    ``ai`` is the outbound capability. When it is None (private mode) the
    fallbacks are never constructed, so no embedding or completion call can
    be made.
    """

    def __init__(
        self,
        settings: Settings,
        store: ActivityStore,
        index: Optional[DocumentIndex] = None,
        ai: Optional[AIServices] = None,
        classifier: Optional[IntentClassifier] = None,
    ):
        self.settings = settings
        self.store = store
        self.index = index
        self.ai = ai
        self.classifier = classifier or IntentClassifier()

        self.registry = HandlerRegistry()
        for handler in default_handlers(store, settings):
            self.registry.register(handler)
        logger.info(f"Registered {len(self.registry.list_handlers())} handlers")

        self.retrieval: Optional[RetrievalFallback] = None
        self.generation: Optional[GenerationFallback] = None
        if ai is not None:
            self.retrieval = RetrievalFallback(ai.embedder, index, store, settings.rag)
            self.generation = GenerationFallback(ai.llm, settings.llm)

    @property
    def private_mode(self) -> bool:
        return self.ai is None

    def answer(
        self,
        user_id: str,
        query: str,
        top_k: Optional[int] = None,
        min_similarity: float = 0.0,
        now: Optional[datetime] = None,
    ) -> Answer:
        """Answer ``query`` for ``user_id``.

        Raises:
            ValidationError: missing, blank or oversized query
            UpstreamError: embedding, generation or store failure
        """
        ctx = self.resolve(user_id, query, top_k=top_k, min_similarity=min_similarity, now=now)

        if ctx.intent is not None:
            return self._dispatch(ctx)

        data_question = is_data_question(ctx.text)

        if self.private_mode:
            if data_question:
                ctx.intent = self.classifier.classify(
                    ctx.text, ctx.area, allow_catch_all=True, now=ctx.now.astimezone(ctx.tz)
                )
                return self._dispatch(ctx)
            logger.info("[Pipeline] Private mode, no intent: static answer")
            return Answer(text=PRIVATE_MODE_MESSAGE, sources=[])

        retrieval = self.retrieval.retrieve(ctx) if data_question else None
        return self.generation.answer(ctx.query, retrieval)

    def resolve(
        self,
        user_id: str,
        query: str,
        top_k: Optional[int] = None,
        min_similarity: float = 0.0,
        now: Optional[datetime] = None,
    ) -> QueryContext:
        """Validate the query and resolve window, area and intent."""
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("query required")
        if len(query) > MAX_QUERY_CHARS:
            raise ValidationError("Query too long")

        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        text = normalize(query)
        window = extract_window(text, now=now, default=self.settings.analytics.default_days)
        area = resolve_area(text, self.store.list_areas(user_id))
        intent = self.classifier.classify(text, area, now=now.astimezone(self.settings.user_timezone))

        logger.info(
            f"[Pipeline] Intent: {intent.value if intent else 'none'}, "
            f"window: {window.days} days, area: {area.name if area else '-'}"
        )

        return QueryContext(
            user_id=user_id,
            query=query,
            text=text,
            window=window,
            now=now,
            tz=self.settings.user_timezone,
            area=area,
            intent=intent,
            top_k=top_k or self.settings.rag.default_top_k,
            min_similarity=min_similarity or 0.0,
        )

    def _dispatch(self, ctx: QueryContext) -> Answer:
        handler = self.registry.get_handler(ctx.intent)
        if handler is None:
            raise LookupError(f"No handler registered for intent '{ctx.intent.value}'")
        return handler.handle(ctx)
