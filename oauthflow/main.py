"""
FastAPI application exposing the OAuth login and callback endpoints.

This module wires logging, the router and the error mapping.
Flow logic is in oauthflow/core, providers in oauthflow/providers.
"""

import logging
import os

# Configure logging FIRST, before other local imports
from oauthflow.logging_config import setup_global_logging

setup_global_logging()

# Now import other modules (they will use the configured logging)
from fastapi import FastAPI, Request, status  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

from oauthflow.core.exceptions import (  # noqa: E402
    ConfigurationError,
    NotSupportedError,
    OAuthFlowError,
    ProviderError,
    TransportError,
    UnexpectedResponseError,
)
from oauthflow.web import router as oauth_router  # noqa: E402

logger = logging.getLogger(__name__)


app = FastAPI(
    title="OAuth Flow",
    description="Authorization code (OAuth2) and three-legged (OAuth1) login flows",
    version="0.1.0",
)


# ============================================================================
# Centralized Exception Handlers
# ============================================================================


def _error_response(status_code: int, exc: OAuthFlowError, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "message": str(exc),
            "error": error,
            "stage": exc.stage.value if exc.stage else None,
        },
    )


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError):
    """
    Handle errors reported by the provider in the callback.

    Usually the user declined consent. Returns 400 Bad Request.
    """
    logger.warning(f"Provider error: {exc}", extra={"error": exc.error})
    return _error_response(status.HTTP_400_BAD_REQUEST, exc, exc.error)


@app.exception_handler(NotSupportedError)
async def not_supported_error_handler(request: Request, exc: NotSupportedError):
    logger.warning(f"Unsupported request: {exc}")
    return _error_response(status.HTTP_400_BAD_REQUEST, exc, "not_supported")


@app.exception_handler(UnexpectedResponseError)
async def unexpected_response_error_handler(request: Request, exc: UnexpectedResponseError):
    """
    Handle provider responses missing a required field.

    Returns 502 Bad Gateway: the upstream answered, but not usefully.
    """
    logger.error(f"Unexpected provider response: {exc}", extra={"field": exc.field})
    return _error_response(status.HTTP_502_BAD_GATEWAY, exc, "unexpected_response")


@app.exception_handler(TransportError)
async def transport_error_handler(request: Request, exc: TransportError):
    """Handle network failures and non-success statuses from the provider."""
    logger.error(f"Transport error: {exc}", extra={"status_code": exc.status_code})
    return _error_response(status.HTTP_502_BAD_GATEWAY, exc, "transport_error")


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Handle flows that cannot proceed with the current configuration."""
    logger.error(f"Configuration error: {exc}", exc_info=True)
    return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc, "configuration_error")


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(oauth_router.router)


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
