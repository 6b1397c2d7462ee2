"""
Ingestion - index a user's activity logs for semantic retrieval.

Each log's notes are rendered to plaintext with a small metadata header
(title, area, date), split into overlapping chunks, embedded in one batch
per log and upserted into the document index. Re-running ingestion replaces
chunks in place because the chunk id is stable (``<log id>#<i>``).
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from logchat.core.config import RAGConfig
from logchat.core.logging import logger
from logchat.models.records import DocumentChunk
from logchat.services import notes
from logchat.services.ai import Embedder
from logchat.services.store import ActivityStore
from logchat.services.vector_store import DocumentIndex

SOURCE_TABLE = "action_logs"


@dataclass
class IngestResult:
    logs: int = 0
    chunks: int = 0

    def to_dict(self):
        return {"logs": self.logs, "chunks": self.chunks}


class IngestService:
    """Builds document chunks from the activity store."""

    def __init__(
        self,
        store: ActivityStore,
        index: Optional[DocumentIndex],
        embedder: Optional[Embedder],
        config: Optional[RAGConfig] = None,
        enabled: bool = False,
    ):
        self.store = store
        self.index = index
        self.embedder = embedder
        self.config = config or RAGConfig()
        self.enabled = enabled

    @property
    def active(self) -> bool:
        """External embeddings are opt-in and need the AI capability."""
        return self.enabled and self.embedder is not None and self.index is not None

    def ingest_user(self, user_id: str, since: Optional[datetime] = None) -> IngestResult:
        """Index the user's logs (optionally only those since ``since``)."""
        logs = self.store.fetch_logs(user_id, since=since)
        result = IngestResult(logs=len(logs))

        if not self.active:
            logger.info(f"[Ingest] External embeddings disabled, skipped {len(logs)} logs")
            return result

        for log in logs:
            text = notes.render_for_index(log.notes, log.occurred_at.isoformat())
            pieces = notes.chunk_text(text, self.config.chunk_max_chars, self.config.chunk_overlap)
            if not pieces:
                continue

            vectors = self.embedder.embed_texts(pieces)
            chunks = [
                DocumentChunk(
                    user_id=user_id,
                    source_table=SOURCE_TABLE,
                    source_id=f"{log.id}#{i}",
                    content=content,
                    embedding=vector,
                    occurred_at=log.occurred_at,
                    title="Log",
                    metadata={"template_id": log.template_id},
                )
                for i, (content, vector) in enumerate(zip(pieces, vectors))
            ]
            result.chunks += self.index.upsert(chunks)

        logger.info(f"[Ingest] {user_id}: {result.logs} logs, {result.chunks} chunks")
        return result
