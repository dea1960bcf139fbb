"""
FastAPI dependencies for the OAuth endpoints.

Provides provider validation and the shared pending-flow store.
"""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, status

from oauthflow.config import OAuthSettings, get_oauth_settings
from oauthflow.infrastructure.transport import AsyncRequestFactory
from oauthflow.providers.registry import SUPPORTED_PROVIDERS
from oauthflow.web.pending import PendingFlows


logger = logging.getLogger(__name__)


@lru_cache()
def get_pending_flows() -> PendingFlows:
    """Provide the pending-flow store singleton."""
    return PendingFlows()


def get_request_factory() -> AsyncRequestFactory:
    """Provide the HTTP transport used by the engines."""
    return AsyncRequestFactory()


def get_settings() -> OAuthSettings:
    return get_oauth_settings()


async def validate_provider(
    provider: str,
    settings: Annotated[OAuthSettings, Depends(get_settings)],
) -> str:
    """
    Validate that the provider is supported and configured.

    Args:
        provider: OAuth provider name from path

    Returns:
        Normalized (lowercase) provider name

    Raises:
        HTTPException: 404 if the provider is unknown, 503 if it has no credentials
    """
    name = provider.lower()
    if name not in SUPPORTED_PROVIDERS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown provider: {provider}. Supported: {SUPPORTED_PROVIDERS}",
        )

    if not settings.is_provider_configured(name):
        logger.warning(f"Provider '{name}' requested but not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Provider '{name}' is not configured",
        )

    return name


# Type aliases for cleaner dependency injection
ValidProvider = Annotated[str, Depends(validate_provider)]
Settings = Annotated[OAuthSettings, Depends(get_settings)]
Pending = Annotated[PendingFlows, Depends(get_pending_flows)]
Transport = Annotated[AsyncRequestFactory, Depends(get_request_factory)]
