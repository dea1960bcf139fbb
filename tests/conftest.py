"""
Shared test configuration and fixtures.
"""

from datetime import UTC, datetime, timedelta

import pytest

from oauthflow.config import ProviderConfig, reset_oauth_settings
from oauthflow.core.domain import AvatarUri, Endpoint, EndpointSet, UserInfo
from oauthflow.core.ports import OAuth1Provider, OAuth2Provider
from oauthflow.providers.parsing import load_json, require_text, text


class FrozenClock:
    """Controllable time source for token expiry tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def parse_example_user(content: str) -> UserInfo:
    data = load_json(content)
    return UserInfo(
        id=require_text(data, "id"),
        first_name=text(data.get("first_name")),
        last_name=text(data.get("last_name")),
        email=text(data.get("email")),
        avatar=AvatarUri(normal=text(data.get("picture"))),
    )


@pytest.fixture(autouse=True)
def reset_settings():
    """Clear the cached settings so each test sees its own environment."""
    reset_oauth_settings()
    yield
    reset_oauth_settings()


@pytest.fixture
def clock():
    """Clock frozen at 2024-01-01 12:00 UTC."""
    return FrozenClock(datetime(2024, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def provider_config():
    """Client credentials without a scope."""
    return ProviderConfig(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="https://app.example.com/callback",
    )


@pytest.fixture
def oauth2_provider():
    """Minimal OAuth2 provider with default hooks."""
    return OAuth2Provider(
        name="Example",
        endpoints=EndpointSet(
            authorize=Endpoint(base_uri="https://auth.example.com", resource_path="/oauth/authorize"),
            token=Endpoint(base_uri="https://auth.example.com", resource_path="/oauth/token"),
            user_info=Endpoint(base_uri="https://api.example.com", resource_path="/me"),
        ),
        parse_user_info=parse_example_user,
    )


@pytest.fixture
def oauth1_provider():
    """Minimal OAuth1 provider."""
    return OAuth1Provider(
        name="Example1",
        endpoints=EndpointSet(
            request_token=Endpoint(
                base_uri="https://auth.example.com", resource_path="/oauth/request_token"
            ),
            authorize=Endpoint(base_uri="https://auth.example.com", resource_path="/oauth/authorize"),
            token=Endpoint(base_uri="https://auth.example.com", resource_path="/oauth/access_token"),
            user_info=Endpoint(base_uri="https://api.example.com", resource_path="/me"),
        ),
        parse_user_info=parse_example_user,
    )


@pytest.fixture
def profile_payload():
    """Profile body returned by the example provider."""
    return {
        "id": "user-42",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "picture": "https://cdn.example.com/ada.png",
    }
