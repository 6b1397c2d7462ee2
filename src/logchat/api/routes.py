"""API routes."""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from logchat.api.dependencies import AppServices, get_services, require_origin, require_user
from logchat.core.errors import LogChatError, UpstreamError
from logchat.core.logging import logger
from logchat.models.schemas import (
    ChatRequest, ChatResponse, ErrorResponse, HealthResponse, IngestRequest, IngestResponse
)

router = APIRouter()

ERROR_RESPONSES = {status: {"model": ErrorResponse} for status in (400, 401, 403, 500)}


def _preflight(request: Request, services: AppServices) -> PlainTextResponse:
    origin = request.headers.get("origin")
    headers = services.origins.headers(origin)
    # Only acknowledge allowed origins so arbitrary origins are never reflected
    if not services.origins.is_allowed(origin):
        return PlainTextResponse("Forbidden", status_code=403, headers=headers)
    return PlainTextResponse("ok", headers=headers)


@router.options("/chat")
def chat_preflight(request: Request, services: AppServices = Depends(get_services)):
    """CORS preflight for /chat."""
    return _preflight(request, services)


@router.options("/ingest")
def ingest_preflight(request: Request, services: AppServices = Depends(get_services)):
    return _preflight(request, services)


@router.get("/health", response_model=HealthResponse)
def health_check(services: AppServices = Depends(get_services)):
    """Health check endpoint."""
    chunks = None
    if services.index is not None:
        try:
            chunks = services.index.count()
        except LogChatError as e:
            logger.error(f"Health check: document index unavailable: {e}")

    llm_status = None
    if services.ai is not None and hasattr(services.ai.llm, "health_check"):
        llm_status = services.ai.llm.health_check()

    return HealthResponse(
        status="running",
        private_mode=services.pipeline.private_mode,
        chunks=chunks,
        llm_status=llm_status,
    )


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_origin)],
)
def chat(
    req: ChatRequest,
    user_id: str = Depends(require_user),
    services: AppServices = Depends(get_services),
):
    """Main chat endpoint."""
    try:
        answer = services.pipeline.answer(
            user_id,
            req.query,
            top_k=req.top_k,
            min_similarity=req.min_similarity,
        )
    except LogChatError:
        raise
    except Exception as e:
        logger.error(f"Chat endpoint error: {e}", exc_info=True)
        raise UpstreamError(str(e)) from e

    return ChatResponse(**answer.to_dict())


@router.post(
    "/ingest",
    response_model=IngestResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_origin)],
)
def ingest(
    req: Optional[IngestRequest] = None,
    user_id: str = Depends(require_user),
    services: AppServices = Depends(get_services),
):
    """Index the caller's activity logs for semantic retrieval."""
    since = req.since if req else None
    try:
        result = services.ingest.ingest_user(user_id, since=since)
    except LogChatError:
        raise
    except Exception as e:
        logger.error(f"Ingest endpoint error: {e}", exc_info=True)
        raise UpstreamError(str(e)) from e

    return IngestResponse(**result.to_dict())
