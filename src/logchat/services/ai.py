"""Outbound AI capability (embeddings + completions).

The pipeline only ever reaches the network through an ``AIServices`` value.
In private mode none is built, so no embedding or completion call can be
made from anywhere in the request path.
"""
from dataclasses import dataclass
from typing import List, Optional, Protocol

from logchat.core.config import Settings
from logchat.core.logging import logger


class Embedder(Protocol):
    def embed_texts(self, texts: List[str]) -> List[List[float]]: ...

    def embed_query(self, text: str) -> List[float]: ...


class Completer(Protocol):
    def complete(self, system_prompt: str, user_prompt: str, temperature: float) -> str: ...


@dataclass
class AIServices:
    """The two outbound collaborators, injected together."""
    embedder: Embedder
    llm: Completer


def build_ai_services(settings: Settings) -> Optional[AIServices]:
    """Wire the AI capability, or return None when private mode is on."""
    if settings.private_mode:
        logger.info("Private mode: external embedding and generation disabled")
        return None

    from logchat.services.embeddings import EmbeddingService
    from logchat.services.llm import LLMService

    return AIServices(
        embedder=EmbeddingService(settings.embeddings),
        llm=LLMService(settings.llm),
    )
