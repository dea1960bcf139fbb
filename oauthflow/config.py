"""
Provider credentials and application settings.

Credentials are loaded from environment variables, one group per provider:
<PROVIDER>_CLIENT_ID, <PROVIDER>_CLIENT_SECRET, <PROVIDER>_REDIRECT_URI and
<PROVIDER>_SCOPE. The engines never mutate a loaded ProviderConfig.
"""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache


logger = logging.getLogger(__name__)


def _env_prefix(provider: str) -> str:
    return provider.strip().upper().replace("-", "_")


@dataclass(frozen=True)
class ProviderConfig:
    """
    Client credentials for one provider.

    Immutable for the lifetime of an engine.
    """

    client_id: str
    client_secret: str
    redirect_uri: str | None = None
    scope: str | None = None

    @classmethod
    def from_env(cls, provider: str, default_redirect_uri: str | None = None) -> "ProviderConfig":
        """
        Load credentials for a provider from environment variables.

        Args:
            provider: Provider name, used as the variable prefix
            default_redirect_uri: Used when <PROVIDER>_REDIRECT_URI is not set

        Returns:
            ProviderConfig with empty strings for missing credentials
        """
        prefix = _env_prefix(provider)
        return cls(
            client_id=os.getenv(f"{prefix}_CLIENT_ID", ""),
            client_secret=os.getenv(f"{prefix}_CLIENT_SECRET", ""),
            redirect_uri=os.getenv(f"{prefix}_REDIRECT_URI") or default_redirect_uri,
            scope=os.getenv(f"{prefix}_SCOPE") or None,
        )

    @property
    def is_complete(self) -> bool:
        """Check that both client credentials are present."""
        return bool(self.client_id and self.client_secret)


@dataclass
class OAuthSettings:
    """
    Application-level OAuth settings.

    Loaded from environment variables. Resolves provider credentials and
    derives callback URLs from BASE_URL.
    """

    base_url: str
    providers: dict[str, ProviderConfig] = field(default_factory=dict)

    @classmethod
    def from_env(cls, provider_names: list[str] | None = None) -> "OAuthSettings":
        """Load settings and credentials for the given providers."""
        if provider_names is None:
            # Imported lazily: the provider registry depends on the engines
            from oauthflow.providers.registry import SUPPORTED_PROVIDERS

            provider_names = SUPPORTED_PROVIDERS

        settings = cls(base_url=os.getenv("BASE_URL", "").rstrip("/"))
        for name in provider_names:
            key = name.lower()
            settings.providers[key] = ProviderConfig.from_env(
                name, default_redirect_uri=settings.get_callback_url(key)
            )
        return settings

    def get_callback_url(self, provider: str) -> str:
        """Generate callback URL for a provider."""
        return f"{self.base_url}/oauth/{provider.lower()}/callback"

    def get_provider_config(self, provider: str) -> ProviderConfig | None:
        """Credentials for a provider, or None if it is unknown."""
        return self.providers.get(provider.lower())

    def is_provider_configured(self, provider: str) -> bool:
        """Check if a provider has valid credentials configured."""
        config = self.get_provider_config(provider)
        return config is not None and config.is_complete

    def get_configured_providers(self) -> list[str]:
        """List all providers with valid configuration."""
        configured = [name for name in self.providers if self.is_provider_configured(name)]
        if not configured:
            logger.warning("No OAuth providers configured (missing credentials)")
        return configured


@lru_cache()
def get_oauth_settings() -> OAuthSettings:
    """Get OAuth settings singleton."""
    return OAuthSettings.from_env()


def reset_oauth_settings() -> None:
    """
    Reset the settings singleton.

    Useful for testing with different environments.
    """
    get_oauth_settings.cache_clear()
