"""
Service Trainer Backend - FastAPI Application

Entry point for the customer-service training API. The session registry and
the orchestrator behind it are created here and attached to app.state.
"""
import asyncio
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, get_settings, validate_required_settings
from shared.api import health
from shared.services.llm_service import LLMService
from trainer.api import sessions
from trainer.exceptions import ConfigurationError
from trainer.orchestration import TrainingOrchestrator
from trainer.services.retrieval_service import (
    ChromaRetrievalService,
    NullRetrievalService,
    RetrievalService,
)
from trainer.services.session_registry import SessionRegistry

logger = logging.getLogger("trainer.main")

CLEANUP_INTERVAL_SECONDS = 60


def build_llm_service(settings: Settings) -> LLMService:
    """Create the LLM service for the configured provider."""
    try:
        validate_required_settings(settings)
    except ValueError as e:
        raise ConfigurationError("llm_provider", str(e)) from e

    return LLMService(
        provider=settings.llm_provider,
        model_id=settings.llm_model,
        api_key=settings.openai_api_key or None,
        gemini_api_key=settings.gemini_api_key or None,
        anthropic_api_key=settings.anthropic_api_key or None,
        timeout=settings.generation_timeout_seconds,
    )


def build_retrieval_service(settings: Settings) -> RetrievalService:
    """Create the SOP retrieval backend selected in settings."""
    if settings.retrieval_backend == "chroma":
        return ChromaRetrievalService(
            persist_directory=settings.sop_store_path,
            collection_name=settings.sop_collection,
            embedding_model=settings.embedding_model,
            timeout_seconds=settings.retrieval_timeout_seconds,
        )
    return NullRetrievalService()


def create_app(
    settings: Optional[Settings] = None,
    llm_service: Optional[LLMService] = None,
    retrieval: Optional[RetrievalService] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    app = FastAPI(
        title="Service Trainer Backend",
        description="Customer-service training sessions with simulated guests and silent scoring",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    orchestrator = TrainingOrchestrator(
        llm_service or build_llm_service(settings),
        settings=settings,
        retrieval=retrieval or build_retrieval_service(settings),
    )
    app.state.registry = SessionRegistry(orchestrator, settings)

    app.include_router(health.router)
    app.include_router(sessions.router)

    async def expire_idle_sessions():
        while True:
            await asyncio.sleep(CLEANUP_INTERVAL_SECONDS)
            app.state.registry.cleanup_expired()

    @app.on_event("startup")
    async def startup_event():
        app.state.cleanup_task = asyncio.create_task(expire_idle_sessions())
        logger.info(
            f"Service Trainer started: provider={settings.llm_provider} "
            f"model={settings.llm_model} environment={settings.environment}"
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        task = getattr(app.state, "cleanup_task", None)
        if task is not None:
            task.cancel()

    return app


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.api_host,
        port=settings.api_port,
    )
