"""Embedding service."""
from typing import List
from logchat.core.config import EmbeddingsConfig
from logchat.core.errors import UpstreamError
from logchat.core.logging import logger


class EmbeddingService:
    """Service for generating embeddings.

    ``provider: openai`` calls an OpenAI-compatible ``/embeddings`` endpoint;
    ``provider: local`` runs a sentence-transformers model on this machine
    (install the ``local-embeddings`` extra).
    """

    def __init__(self, config: EmbeddingsConfig):
        """Initialize lazily; nothing is loaded or contacted until first use."""
        self.config = config
        self._client = None
        self.model = None

    def _ensure_loaded(self):
        """Create the remote client or load the local model on first use."""
        if self.config.provider == "local":
            if self.model is None:
                from sentence_transformers import SentenceTransformer
                self.model = SentenceTransformer(self.config.model_name, device=self.config.device)
                logger.info(f"Loaded embedding model: {self.config.model_name} ({self.config.device})")
            return

        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(
                base_url=self.config.base_url,
                api_key=self.config.api_key or "not-needed",
            )
            logger.info(f"Embedding client initialized: {self.config.base_url}")

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        """Embed multiple texts in one batch."""
        if not texts:
            return []
        self._ensure_loaded()
        try:
            if self.model is not None:
                return self.model.encode(texts, show_progress_bar=False).tolist()
            resp = self._client.embeddings.create(model=self.config.model_name, input=texts)
        except Exception as e:
            logger.error(f"Embedding call failed: {e}")
            raise UpstreamError(f"Embedding service unavailable: {str(e)}") from e
        return [item.embedding for item in resp.data]

    def embed_query(self, text: str) -> List[float]:
        """Embed a single query."""
        return self.embed_texts([text])[0]
