"""Activity log chat service - FastAPI entry point."""
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from logchat.api.auth import TokenVerifier, build_verifier
from logchat.api.cors import OriginPolicy
from logchat.api.dependencies import AppServices
from logchat.api.routes import router
from logchat.core.config import Settings, settings as default_settings
from logchat.core.errors import LogChatError
from logchat.core.logging import logger, set_level
from logchat.models.schemas import ErrorResponse
from logchat.services.ai import build_ai_services
from logchat.services.chat.orchestrator import ChatPipeline
from logchat.services.ingest import IngestService
from logchat.services.store import ActivityStore
from logchat.services.vector_store import DocumentIndex

_UNSET = object()


def build_services(
    settings: Optional[Settings] = None,
    store: Optional[ActivityStore] = None,
    index=_UNSET,
    ai=_UNSET,
    verifier: Optional[TokenVerifier] = None,
) -> AppServices:
    """Wire stores, AI capability, pipeline and auth from one Settings value.

    ``index`` and ``ai`` may be passed explicitly as None (no semantic
    index / private mode); leaving them out builds them from settings.
    """
    settings = settings or default_settings
    store = store or ActivityStore(settings.storage.db_path)
    if index is _UNSET:
        index = DocumentIndex(settings.storage.collection_name, settings.storage.chroma_path)
    if ai is _UNSET:
        ai = build_ai_services(settings)

    pipeline = ChatPipeline(settings, store, index=index, ai=ai)
    ingest = IngestService(
        store,
        index,
        ai.embedder if ai is not None else None,
        config=settings.rag,
        enabled=settings.features.external_embeddings,
    )
    return AppServices(
        settings=settings,
        store=store,
        index=index,
        ai=ai,
        pipeline=pipeline,
        ingest=ingest,
        verifier=verifier or build_verifier(settings),
        origins=OriginPolicy(settings.cors.allowed_origins),
    )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ActivityStore] = None,
    index=_UNSET,
    ai=_UNSET,
    verifier: Optional[TokenVerifier] = None,
) -> FastAPI:
    """Build the FastAPI app around an explicit service graph."""
    services = build_services(settings, store=store, index=index, ai=ai, verifier=verifier)
    set_level(services.settings.logging.level)

    app = FastAPI(
        title="LogChat",
        description="Questions and answers over a personal activity log",
        version="0.1.0",
    )
    app.state.services = services
    app.include_router(router)

    @app.exception_handler(LogChatError)
    async def logchat_error_handler(request: Request, exc: LogChatError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        origin = request.headers.get("origin")
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=exc.message).model_dump(),
            headers=services.origins.headers(origin),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = errors[0].get("msg", "invalid request") if errors else "invalid request"
        origin = request.headers.get("origin")
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error=f"Invalid request: {detail}").model_dump(),
            headers=services.origins.headers(origin),
        )

    logger.info("=" * 60)
    logger.info("LogChat starting up")
    logger.info(f"Database: {services.settings.storage.db_path}")
    logger.info(f"Private mode: {services.pipeline.private_mode}")
    if not services.pipeline.private_mode:
        logger.info(f"LLM endpoint: {services.settings.llm.base_url}")
        logger.info(f"LLM model: {services.settings.llm.model_name}")
    logger.info("=" * 60)

    return app


if __name__ == "__main__":
    import os
    import uvicorn
    # Only enable reload in development
    reload = os.getenv("LOGCHAT_DEV_MODE", "false").lower() == "true"
    uvicorn.run(
        "logchat.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8080,
        reload=reload,
        log_level="info"
    )
