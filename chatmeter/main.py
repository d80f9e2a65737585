"""
Chatmeter - Main FastAPI Application

Serves the chat client API (sessions, messages, notices) and the model
relay endpoint that the client calls.
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .config import settings
from .api import chat_router, sessions_router, relay_router
from .core.logging_config import setup_logging
from .middleware import RequestLoggingMiddleware
from .models import AIModel

# Logger will be initialized after setup_logging() is called
logger = logging.getLogger(__name__)


def _configured_models() -> list:
    """Selectable models whose provider key is set on this relay."""
    return [m.value for m in AIModel if getattr(settings, f"{m.value}_api_key", None)]


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings)

    logger.info(
        f"Starting {settings.app_name} v{settings.app_version}",
        extra={"extra_fields": {
            "storage": settings.storage_type,
            "relay_url": settings.relay_url,
            "relay_timeout": settings.relay_timeout,
            "exchange_mode": settings.exchange_mode,
            "default_model": settings.default_model,
        }}
    )
    if not _configured_models():
        logger.warning("No model provider key configured, relay requests will return errors")
    yield
    logger.info(f"Shutting down {settings.app_name}")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Chat client backend with persisted sessions and per-message cost tracking",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.log_api_requests:
    app.add_middleware(RequestLoggingMiddleware)

app.include_router(sessions_router)
app.include_router(chat_router)
app.include_router(relay_router)


@app.get("/")
async def root():
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "models": [m.value for m in AIModel],
        "default_model": settings.default_model,
    }


@app.get("/health")
async def health_check():
    """Liveness plus the backends this instance is wired to."""
    return {
        "status": "healthy",
        "storage": settings.storage_type,
        "exchange_mode": settings.exchange_mode,
        "relay_models": _configured_models(),
        "version": settings.app_version,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "chatmeter.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
