"""Per-request query context shared by handlers and the fallbacks."""
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Optional

from logchat.models.records import LifeArea
from logchat.services.intent.classifier import Intent
from logchat.services.time_window import TimeWindow


@dataclass
class QueryContext:
    """Everything resolved from one request before dispatch."""
    user_id: str
    query: str
    text: str
    window: TimeWindow
    now: datetime
    tz: tzinfo = timezone.utc
    area: Optional[LifeArea] = None
    intent: Optional[Intent] = None
    top_k: int = 8
    min_similarity: float = 0.0

    @property
    def days(self) -> int:
        return self.window.days

    @property
    def area_name(self) -> Optional[str]:
        return self.area.name if self.area else None
