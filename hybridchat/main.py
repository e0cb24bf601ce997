"""
HybridChat - Main FastAPI Application
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import chat_router, sessions_router, status_router
from .config import settings
from .core.capability_probe import LocalCapabilityProbe
from .core.connectivity import ConnectivityMonitor
from .core.logging_config import setup_logging
from .core.orchestrator import TurnOrchestrator
from .llm.base import GenerationProvider
from .llm.factory import create_providers
from .llm.local_runtime import LocalModelRuntime
from .middleware import RequestLoggingMiddleware
from .models import Backend
from .storage import LocalStorage, SessionStore

# Logger will be initialized after setup_logging() is called
logger = logging.getLogger(__name__)


def build_orchestrator(
    config: Any,
    providers: Optional[Dict[Backend, GenerationProvider]] = None,
    local_runtime: Optional[LocalModelRuntime] = None,
) -> TurnOrchestrator:
    """
    Wire storage, providers, connectivity and the capability probe together.

    Args:
        config: Settings object
        providers: Pre-built providers (defaults to create_providers(config))
        local_runtime: On-device runtime for the default local provider
    """
    providers = providers or create_providers(config, local_runtime=local_runtime)
    store = SessionStore(LocalStorage(config.local_storage_path), key=config.sessions_key)
    return TurnOrchestrator(
        store=store,
        providers=providers,
        connectivity=ConnectivityMonitor(online=config.assume_online),
        probe=LocalCapabilityProbe(providers[Backend.LOCAL]),
        mode=config.default_mode,
    )


def create_app(
    config: Any = settings,
    providers: Optional[Dict[Backend, GenerationProvider]] = None,
    local_runtime: Optional[LocalModelRuntime] = None,
) -> FastAPI:
    """Create the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events."""
        # Startup
        setup_logging(config)
        orchestrator = build_orchestrator(config, providers=providers, local_runtime=local_runtime)
        await orchestrator.load()
        app.state.orchestrator = orchestrator

        cloud = orchestrator.providers[Backend.CLOUD]
        logger.info(f"Starting {config.app_name} v{config.app_version}")
        logger.info(f"Storage path: {config.local_storage_path}")
        logger.info(f"Cloud configured: {getattr(cloud, 'is_configured', False)}")
        logger.info(f"On-device model: {orchestrator.probe.status.value}")
        logger.info(f"Connection mode: {orchestrator.mode.value}")
        yield
        # Shutdown
        logger.info(f"Shutting down {config.app_name}")

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="Chat service routing each turn to a cloud or on-device model",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if config.log_api_requests:
        app.add_middleware(RequestLoggingMiddleware)

    app.include_router(sessions_router)
    app.include_router(chat_router)
    app.include_router(status_router)

    @app.get("/")
    async def root():
        return {
            "app": config.app_name,
            "version": config.app_version,
            "status": "running",
        }

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "version": config.app_version}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "hybridchat.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
