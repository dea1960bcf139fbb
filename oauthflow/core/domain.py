"""
Core domain models for the authorization flows.

These models describe provider endpoints, token state and the normalized
user profile. They are independent of the HTTP transport.
"""

from datetime import datetime
from typing import Any, Iterable, Iterator, Mapping
from urllib.parse import parse_qsl

from pydantic import BaseModel, ConfigDict, Field

from oauthflow.core.exceptions import ConfigurationError, UnexpectedResponseError


AUTHORIZATION_CODE_GRANT = "authorization_code"
REFRESH_TOKEN_GRANT = "refresh_token"


class Endpoint(BaseModel):
    """A service endpoint: base URI plus resource path."""

    base_uri: str = Field(description="Scheme and host, optionally with a path prefix")
    resource_path: str = Field(
        default="", description="Resource path, may carry its own query string"
    )

    model_config = ConfigDict(frozen=True)

    @property
    def uri(self) -> str:
        """Absolute URI of the endpoint."""
        if not self.resource_path:
            return self.base_uri
        return f"{self.base_uri.rstrip('/')}/{self.resource_path.lstrip('/')}"


class EndpointSet(BaseModel):
    """
    Static endpoint table for one provider.

    OAuth2 providers use authorize, token and user_info.
    OAuth1 providers additionally use request_token.
    """

    authorize: Endpoint | None = None
    token: Endpoint | None = None
    request_token: Endpoint | None = None
    user_info: Endpoint | None = None

    model_config = ConfigDict(frozen=True)

    def require(self, name: str) -> Endpoint:
        """Get an endpoint by name, failing if the provider did not define it."""
        endpoint = getattr(self, name, None)
        if endpoint is None:
            raise ConfigurationError(f"Provider does not define a '{name}' endpoint")
        return endpoint


class AvatarUri(BaseModel):
    """Avatar image URIs in three sizes."""

    small: str | None = None
    normal: str | None = None
    large: str | None = None


class UserInfo(BaseModel):
    """
    Normalized profile of the authenticated user.

    Produced fresh by every profile fetch. provider_name is stamped by the
    engine, not by the provider's parser.
    """

    id: str | None = Field(default=None, description="Provider-side user ID")
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    avatar: AvatarUri = Field(default_factory=AvatarUri)
    provider_name: str | None = Field(
        default=None, description="Name of the provider that issued the profile"
    )


class TokenState(BaseModel):
    """
    OAuth2 token state held by an engine.

    Immutable: every successful exchange produces a new instance.
    grant_type records which grant produced this state.
    """

    access_token: str = Field(min_length=1)
    refresh_token: str | None = None
    token_type: str | None = None
    expires_at: datetime | None = None
    grant_type: str = AUTHORIZATION_CODE_GRANT

    model_config = ConfigDict(frozen=True)

    def is_valid_at(self, now: datetime) -> bool:
        """Check whether the token can be reused without a refresh."""
        if self.expires_at is None:
            return False
        return now < self.expires_at


class OAuth1TokenState(BaseModel):
    """OAuth1 token credentials: either temporary or final."""

    access_token: str = Field(min_length=1)
    access_token_secret: str = ""

    model_config = ConfigDict(frozen=True)


class CallbackParameters(Mapping[str, str]):
    """
    Ordered, multi-valued query parameters from a provider callback.

    Lookup by key returns the first value, matching how the flows read
    ``code``, ``state``, ``oauth_token`` and friends.
    """

    def __init__(self, items: Iterable[tuple[str, Any]] = ()):
        self._items: tuple[tuple[str, str], ...] = tuple(
            (str(key), "" if value is None else str(value)) for key, value in items
        )

    @classmethod
    def from_query_string(cls, query: str) -> "CallbackParameters":
        """Parse a raw query string (with or without a leading '?')."""
        return cls(parse_qsl(query.lstrip("?"), keep_blank_values=True))

    @classmethod
    def coerce(cls, parameters: Any) -> "CallbackParameters":
        """
        Build CallbackParameters from whatever the caller has at hand.

        Accepts another CallbackParameters, a query string, a multi-dict
        exposing multi_items() (Starlette QueryParams), a mapping, or an
        iterable of pairs.
        """
        if isinstance(parameters, CallbackParameters):
            return parameters
        if parameters is None:
            return cls()
        if isinstance(parameters, str):
            return cls.from_query_string(parameters)
        if hasattr(parameters, "multi_items"):
            return cls(parameters.multi_items())
        if isinstance(parameters, Mapping):
            return cls(parameters.items())
        return cls(parameters)

    def __getitem__(self, key: str) -> str:
        for name, value in self._items:
            if name == key:
                return value
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        seen = set()
        for name, _ in self._items:
            if name not in seen:
                seen.add(name)
                yield name

    def __len__(self) -> int:
        return len({name for name, _ in self._items})

    def getlist(self, key: str) -> list[str]:
        """All values for a key, in order."""
        return [value for name, value in self._items if name == key]

    def multi_items(self) -> list[tuple[str, str]]:
        """All (key, value) pairs, in order."""
        return list(self._items)

    def require(self, key: str) -> str:
        """Get a non-empty value or fail with UnexpectedResponseError."""
        value = self.get(key)
        if not value:
            raise UnexpectedResponseError(key)
        return value

    def __repr__(self) -> str:
        return f"CallbackParameters({list(self._items)!r})"
