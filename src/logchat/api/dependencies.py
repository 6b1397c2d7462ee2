"""Per-app service container and FastAPI dependencies."""
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, Request, Response

from logchat.api.auth import TokenVerifier
from logchat.api.cors import OriginPolicy
from logchat.core.config import Settings
from logchat.core.errors import OriginForbiddenError
from logchat.services.ai import AIServices
from logchat.services.chat.orchestrator import ChatPipeline
from logchat.services.ingest import IngestService
from logchat.services.store import ActivityStore
from logchat.services.vector_store import DocumentIndex


@dataclass
class AppServices:
    """Everything a request needs, wired once in ``create_app``."""
    settings: Settings
    store: ActivityStore
    index: Optional[DocumentIndex]
    ai: Optional[AIServices]
    pipeline: ChatPipeline
    ingest: IngestService
    verifier: TokenVerifier
    origins: OriginPolicy


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def require_origin(request: Request, response: Response) -> str:
    """Reject disallowed origins and attach CORS headers to the response."""
    origins: OriginPolicy = request.app.state.services.origins
    origin = request.headers.get("origin")
    if not origins.is_allowed(origin):
        raise OriginForbiddenError("origin_forbidden")
    response.headers.update(origins.headers(origin))
    return origin


def require_user(request: Request, authorization: Optional[str] = Header(None)) -> str:
    """Resolve the caller's user id from the bearer token."""
    verifier: TokenVerifier = request.app.state.services.verifier
    return verifier.authenticate(authorization)
