"""Domain records read from the log store and the semantic index."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class ActivityLog:
    """One logged activity. Immutable except for ``earned_xp``."""
    id: str
    user_id: str
    occurred_at: datetime
    duration_min: Optional[int] = None
    notes: Optional[str] = None
    earned_xp: int = 0
    template_id: Optional[str] = None


@dataclass(frozen=True)
class LifeArea:
    """User-defined topical category."""
    user_id: str
    name: str
    category: str = ""


@dataclass
class DocumentChunk:
    """Retrievable plaintext fragment of a log plus its embedding."""
    user_id: str
    source_table: str
    source_id: str
    content: str
    embedding: List[float]
    occurred_at: Optional[datetime] = None
    title: str = "Log"
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        """Composite identity; upserts with the same key replace in place."""
        return f"{self.user_id}:{self.source_table}:{self.source_id}"


@dataclass
class ChunkMatch:
    """A similarity search hit."""
    id: str
    content: str
    similarity: float
    occurred_at: Optional[datetime] = None
    title: str = "Log"


@dataclass
class SourceRef:
    """Citation attached to a generated answer."""
    id: str
    title: str
    occurred_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "occurred_at": self.occurred_at}


@dataclass
class Answer:
    """Rendered answer plus the sources that grounded it."""
    text: str
    sources: List[SourceRef] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"answer": self.text, "sources": [s.to_dict() for s in self.sources]}
