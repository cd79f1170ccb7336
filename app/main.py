# app/main.py
from typing import Optional

from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

from app.core.config import Settings, get_settings
from app.api.endpoints import protected
from app.services.content import StaticContentProvider
from app.x402.errors import GateError, error_response
from app.x402.facilitator import FacilitatorClient
from app.x402.middleware import X402Middleware
import logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    facilitator_client: Optional[FacilitatorClient] = None,
    content_provider=None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Gate configuration; defaults to the cached environment settings
        facilitator_client: Client for the facilitator's /verify endpoint
        content_provider: Source of the protected content; defaults to PROTECTED_CONTENT

    Returns:
        Configured FastAPI app with the x402 middleware installed
    """
    settings = settings or get_settings()

    app = FastAPI(title=settings.PROJECT_NAME)
    app.state.settings = settings
    app.state.content_provider = content_provider or StaticContentProvider(settings.PROTECTED_CONTENT)

    app.add_middleware(X402Middleware, settings=settings, facilitator_client=facilitator_client)

    # The prefix ensures the gated route is served at /api/protected-endpoint
    app.include_router(protected.router, prefix="/api", tags=["protected"])

    @app.exception_handler(GateError)
    async def gate_error_handler(request: Request, exc: GateError) -> JSONResponse:
        return error_response(exc)

    @app.get("/", summary="Health Check", tags=["default"])
    def read_root():
        """ Basic health check endpoint. """
        logger.info("Root endpoint '/' accessed.")
        return {"status": "ok", "message": f"Welcome to {settings.PROJECT_NAME}"}

    return app


# Configure basic logging
logging.basicConfig(level=get_settings().LOG_LEVEL.upper())

app = create_app()
