import logging

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from . import __version__
from .api.routes import chat
from .core.config import get_settings
from .logging_utils import setup_logging
from .middleware.logging_middleware import RequestLoggingMiddleware


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(title=settings.app_name, version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["x-request-id"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(chat.router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    @app.get("/metrics")
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    logging.getLogger("inventory_agent").info(
        "Application created",
        extra={
            "environment": settings.environment,
            "chat_model": settings.openai_chat_model,
            "checkpoint_backend": settings.checkpoint_backend,
        },
    )
    return app


app = create_app()
