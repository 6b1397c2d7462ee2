"""
Document Index

ChromaDB collection holding per-user document chunks derived from activity
logs. The chunk id is ``user_id:source_table:source_id``, so upserting the
same chunk twice replaces it in place.

Usage:
    index = DocumentIndex(persist_path=Path("data/chroma"))
    index.upsert([chunk])
    hits = index.search(vector, match_count=12, min_similarity=0.2, user_id="u1")
"""
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from logchat.core.errors import StoreError
from logchat.core.logging import logger
from logchat.models.records import ChunkMatch, DocumentChunk


def _iso(dt: Optional[datetime]) -> str:
    if dt is None:
        return ""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


class DocumentIndex:
    """ChromaDB-backed semantic index of document chunks."""

    def __init__(
        self,
        collection_name: str = "user_documents",
        persist_path: Optional[Path] = None,
    ):
        """Initialize the index.

        Args:
            collection_name: Name of the ChromaDB collection
            persist_path: Directory to persist to; in-memory when None
        """
        self.collection_name = collection_name
        self.persist_path = persist_path

        self._client = None
        self._collection = None

    def _init_client(self):
        """Initialize ChromaDB client."""
        if self._client is not None:
            return

        import chromadb
        from chromadb.config import Settings

        try:
            if self.persist_path:
                self.persist_path.mkdir(parents=True, exist_ok=True)
                self._client = chromadb.PersistentClient(
                    path=str(self.persist_path),
                    settings=Settings(anonymized_telemetry=False)
                )
            else:
                self._client = chromadb.EphemeralClient(
                    settings=Settings(anonymized_telemetry=False)
                )

            # Embeddings always come from the caller
            self._collection = self._client.get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=None,
            )
        except Exception as e:
            self._client = None
            raise StoreError(f"Document index unavailable: {e}") from e

        logger.info(
            f"Document index initialized: {self.collection_name} "
            f"({self._collection.count()} chunks)"
        )

    def upsert(self, chunks: List[DocumentChunk]) -> int:
        """Insert or replace chunks by their composite key."""
        self._init_client()
        if not chunks:
            return 0

        try:
            self._collection.upsert(
                ids=[c.key for c in chunks],
                embeddings=[list(c.embedding) for c in chunks],
                documents=[c.content for c in chunks],
                metadatas=[self._metadata(c) for c in chunks],
            )
        except Exception as e:
            raise StoreError(f"Document upsert failed: {e}") from e

        logger.debug(f"Upserted {len(chunks)} chunks into {self.collection_name}")
        return len(chunks)

    def search(
        self,
        query_vector: List[float],
        match_count: int,
        min_similarity: float,
        user_id: str,
    ) -> List[ChunkMatch]:
        """Nearest chunks of one user, most similar first.

        Similarity is ``1 - cosine distance``; hits below ``min_similarity``
        are dropped here already.
        """
        self._init_client()
        available = self.count(user_id)
        if available == 0:
            return []

        try:
            results = self._collection.query(
                query_embeddings=[list(query_vector)],
                n_results=min(match_count, available),
                where={"user_id": user_id},
                include=["documents", "metadatas", "distances"],
            )
        except Exception as e:
            raise StoreError(f"Similarity search failed: {e}") from e

        ids = (results.get("ids") or [[]])[0] or []
        docs = (results.get("documents") or [[]])[0] or []
        metas = (results.get("metadatas") or [[]])[0] or []
        distances = (results.get("distances") or [[]])[0] or []

        matches = []
        for chunk_id, text, meta, distance in zip(ids, docs, metas, distances):
            similarity = 1.0 - float(distance)
            if similarity < min_similarity:
                continue
            meta = meta or {}
            matches.append(ChunkMatch(
                id=meta.get("source_id") or chunk_id,
                content=text or "",
                similarity=similarity,
                occurred_at=_parse_iso(meta.get("occurred_at")),
                title=meta.get("title") or "Log",
            ))
        return matches

    def get(self, user_id: str, source_table: str, source_id: str) -> Optional[DocumentChunk]:
        """Fetch one chunk by its composite key."""
        self._init_client()
        key = f"{user_id}:{source_table}:{source_id}"
        result = self._collection.get(ids=[key], include=["documents", "metadatas", "embeddings"])
        if not result.get("ids"):
            return None
        meta = (result.get("metadatas") or [{}])[0] or {}
        embeddings = result.get("embeddings")
        embedding = list(embeddings[0]) if embeddings is not None and len(embeddings) else []
        return DocumentChunk(
            user_id=user_id,
            source_table=source_table,
            source_id=source_id,
            content=(result.get("documents") or [""])[0] or "",
            embedding=embedding,
            occurred_at=_parse_iso(meta.get("occurred_at")),
            title=meta.get("title") or "Log",
            metadata=json.loads(meta.get("metadata_json") or "{}"),
        )

    def count(self, user_id: Optional[str] = None) -> int:
        """Number of chunks, overall or for one user."""
        self._init_client()
        if user_id is None:
            return self._collection.count()
        result = self._collection.get(where={"user_id": user_id}, include=[])
        return len(result.get("ids") or [])

    def _metadata(self, chunk: DocumentChunk) -> Dict[str, Any]:
        # Chroma metadata values must be scalars
        return {
            "user_id": chunk.user_id,
            "source_table": chunk.source_table,
            "source_id": chunk.source_id,
            "title": chunk.title or "Log",
            "occurred_at": _iso(chunk.occurred_at),
            "metadata_json": json.dumps(chunk.metadata or {}),
        }
