"""
Retrieval Fallback - builds grounding context for data questions.

Semantic search over the user's document chunks first; when nothing usable
survives the similarity floor and the time window, the most recent raw logs
in the window stand in as ad-hoc documents so a data question still gets
grounded without an up-to-date index.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from logchat.core.config import RAGConfig
from logchat.core.logging import logger
from logchat.models.records import SourceRef
from logchat.services import notes
from logchat.services.ai import Embedder
from logchat.services.intent.context import QueryContext
from logchat.services.store import ActivityStore
from logchat.services.vector_store import DocumentIndex


def _iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).isoformat()


@dataclass
class ContextDoc:
    """One block of grounding context."""
    id: str
    content: str
    title: str = "Log"
    occurred_at: Optional[datetime] = None
    from_index: bool = True


@dataclass
class RetrievalResult:
    docs: List[ContextDoc] = field(default_factory=list)
    degraded: bool = False

    @property
    def context(self) -> str:
        """Labeled blocks joined by blank lines."""
        blocks = []
        for i, doc in enumerate(self.docs, start=1):
            if doc.from_index:
                blocks.append(f"# Doc {i}\n{doc.content}")
            else:
                blocks.append(f"# Log {i} ({_iso(doc.occurred_at)})\n{doc.content}")
        return "\n\n".join(blocks)

    @property
    def sources(self) -> List[SourceRef]:
        return [SourceRef(id=d.id, title=d.title, occurred_at=_iso(d.occurred_at)) for d in self.docs]

    def __bool__(self) -> bool:
        return any(doc.content.strip() for doc in self.docs)


class RetrievalFallback:
    """Similarity search with a fixed floor, window filter and raw-log degrade."""

    def __init__(
        self,
        embedder: Embedder,
        index: Optional[DocumentIndex],
        store: ActivityStore,
        config: Optional[RAGConfig] = None,
    ):
        self.embedder = embedder
        self.index = index
        self.store = store
        self.config = config or RAGConfig()

    def retrieve(self, ctx: QueryContext) -> RetrievalResult:
        """Collect context for ``ctx``; an empty result means smalltalk mode."""
        docs = self._search_chunks(ctx)
        if docs:
            logger.info(f"[Retrieval] {len(docs)} chunks in context")
            return RetrievalResult(docs=docs)

        docs = self._recent_logs(ctx)
        logger.info(f"[Retrieval] No usable chunks, degraded to {len(docs)} raw logs")
        return RetrievalResult(docs=docs, degraded=True)

    def _search_chunks(self, ctx: QueryContext) -> List[ContextDoc]:
        if self.index is None:
            return []

        floor = self.config.similarity_floor
        vector = self.embedder.embed_query(ctx.query)
        matches = self.index.search(
            vector,
            match_count=max(self.config.min_match_count, ctx.top_k),
            min_similarity=max(floor, ctx.min_similarity),
            user_id=ctx.user_id,
        )

        docs = []
        for match in matches:
            if match.similarity < floor or not (match.content or "").strip():
                continue
            # Chunks without a timestamp cannot be placed in the window
            if match.occurred_at is None or match.occurred_at < ctx.window.since:
                continue
            docs.append(ContextDoc(
                id=match.id,
                content=match.content,
                title=match.title or "Log",
                occurred_at=match.occurred_at,
            ))
        return docs

    def _recent_logs(self, ctx: QueryContext) -> List[ContextDoc]:
        logs = self.store.fetch_logs(ctx.user_id, since=ctx.window.since, limit=self.config.raw_log_limit)
        return [
            ContextDoc(
                id=log.id,
                content=notes.plaintext(log.notes),
                title="Log",
                occurred_at=log.occurred_at,
                from_index=False,
            )
            for log in logs
        ]
