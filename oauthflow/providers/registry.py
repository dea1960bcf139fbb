"""
Registry of bundled identity providers and engine construction.

Providers are plain values; the engine class is picked from the
provider's protocol.
"""

from oauthflow.config import ProviderConfig
from oauthflow.core.authorization_code import (
    AsyncAuthorizationCodeEngine,
    AuthorizationCodeEngine,
)
from oauthflow.core.ports import OAuth1Provider, OAuth2Provider
from oauthflow.core.request_token import AsyncRequestTokenEngine, RequestTokenEngine
from oauthflow.providers.facebook import FACEBOOK
from oauthflow.providers.github import GITHUB
from oauthflow.providers.mailru import MAILRU
from oauthflow.providers.twitter import TWITTER
from oauthflow.providers.uber import UBER
from oauthflow.providers.vsts import VSTS


Provider = OAuth2Provider | OAuth1Provider

PROVIDERS: dict[str, Provider] = {
    provider.name.lower(): provider
    for provider in (FACEBOOK, MAILRU, UBER, VSTS, GITHUB, TWITTER)
}

SUPPORTED_PROVIDERS = list(PROVIDERS)


def get_provider(name: str) -> Provider:
    """
    Look up a bundled provider by name, ignoring case.

    Raises:
        KeyError: If no provider has that name
    """
    key = name.strip().lower()
    if key not in PROVIDERS:
        raise KeyError(f"Unknown provider: {name}")
    return PROVIDERS[key]


def _resolve(provider: Provider | str) -> Provider:
    return get_provider(provider) if isinstance(provider, str) else provider


def create_engine(
    provider: Provider | str, config: ProviderConfig, factory=None
) -> AuthorizationCodeEngine | RequestTokenEngine:
    """Build a blocking engine for a provider value or name."""
    provider = _resolve(provider)
    if isinstance(provider, OAuth1Provider):
        return RequestTokenEngine(provider, config, factory)
    return AuthorizationCodeEngine(provider, config, factory)


def create_async_engine(
    provider: Provider | str, config: ProviderConfig, factory=None
) -> AsyncAuthorizationCodeEngine | AsyncRequestTokenEngine:
    """Build a non-blocking engine for a provider value or name."""
    provider = _resolve(provider)
    if isinstance(provider, OAuth1Provider):
        return AsyncRequestTokenEngine(provider, config, factory)
    return AsyncAuthorizationCodeEngine(provider, config, factory)
