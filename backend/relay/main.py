"""
FastAPI application entry point.
Builds the relay app from an explicit Settings object.
"""
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.exceptions import HTTPException as StarletteHTTPException

from relay import __version__
from relay.api.router import api_router
from relay.config import Settings
from relay.middleware.logging_middleware import LoggingMiddleware
from relay.middleware.metrics_middleware import MetricsMiddleware
from relay.storage.cloudant_client import DocumentStoreClient
from relay.storage.cos_client import ObjectStorageClient
from relay.utils.logging import configure_logging

SERVICE_NAME = "cos-cloudant-relay"

logger = logging.getLogger(__name__)


async def plain_text_http_exception_handler(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    """Render every HTTP error as a plain-text line."""
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return PlainTextResponse(
        f"{detail}\n",
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None)
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the relay application.
    
    Args:
        settings: Configuration to use; read from the environment when None
        
    Returns:
        Configured FastAPI app with both remote clients on app.state
    """
    if settings is None:
        settings = Settings()
    
    configure_logging(SERVICE_NAME, settings.log_level)
    
    app = FastAPI(
        title="COS / Cloudant Relay",
        description="Forwards file uploads to object storage and JSON documents to Cloudant",
        version=__version__
    )
    
    app.state.settings = settings
    app.state.object_storage = ObjectStorageClient.from_settings(settings)
    app.state.document_store = DocumentStoreClient.from_settings(settings)
    
    # Last added runs first: logging wraps metrics
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(LoggingMiddleware)
    
    app.add_exception_handler(StarletteHTTPException, plain_text_http_exception_handler)
    
    app.include_router(api_router)
    
    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "COS / Cloudant Relay",
            "version": __version__,
            "environment": settings.environment
        }
    
    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )
    
    return app


app = create_app()


def run():
    """Serve the module-level app; exits if the port cannot be bound."""
    settings = app.state.settings
    logger.info(f"starting server on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
