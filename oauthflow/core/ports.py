"""
Port definitions (interfaces) for the authorization engines.

Ports define the contracts between the engines and their collaborators:
the HTTP transport and the provider plug-ins. Providers are plain values
bundling endpoints, a profile parser and optional hooks; the engines never
subclass per provider.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Protocol

import httpx

from oauthflow.config import ProviderConfig
from oauthflow.core.domain import (
    CallbackParameters,
    Endpoint,
    EndpointSet,
    OAuth1TokenState,
    TokenState,
    UserInfo,
)

if TYPE_CHECKING:
    from oauthflow.infrastructure.transport import RestClient, RestRequest


@dataclass
class RequestHookArgs:
    """
    Mutable bundle handed to a provider hook.

    Only the members that exist at the hook's stage are set: client and
    request before a call, response after it. A hook may mutate request,
    replace client.authenticator or read response; its return value is
    ignored.
    """

    configuration: ProviderConfig
    client: Optional["RestClient"] = None
    request: Optional["RestRequest"] = None
    response: httpx.Response | None = None
    parameters: CallbackParameters | None = None
    grant_type: str | None = None
    token: TokenState | OAuth1TokenState | None = None


class RequestHook(Protocol):
    """A provider extension point invoked at a fixed pipeline stage."""

    def __call__(self, args: RequestHookArgs) -> None:
        ...


class UserInfoParser(Protocol):
    """Maps raw profile endpoint content to a normalized UserInfo."""

    def __call__(self, content: str) -> UserInfo:
        ...


class HttpTransport(Protocol):
    """
    Port for the blocking HTTP transport.

    Implemented by oauthflow.infrastructure.transport.RequestFactory.
    """

    def create_client(self, endpoint: Endpoint) -> "RestClient":
        ...

    def create_request(self, endpoint: Endpoint, method: str = "GET") -> "RestRequest":
        ...

    def execute(self, client: "RestClient", request: "RestRequest") -> httpx.Response:
        """
        Send the request.

        Raises:
            TransportError: On network failure or an unacceptable status
        """
        ...


class AsyncHttpTransport(Protocol):
    """Port for the non-blocking HTTP transport (AsyncRequestFactory)."""

    def create_client(self, endpoint: Endpoint) -> "RestClient":
        ...

    def create_request(self, endpoint: Endpoint, method: str = "GET") -> "RestRequest":
        ...

    def execute(
        self, client: "RestClient", request: "RestRequest"
    ) -> Awaitable[httpx.Response]:
        ...


@dataclass(frozen=True)
class OAuth2Provider:
    """
    An OAuth2 identity provider plug-in.

    before_access_token, when given, replaces the default token request
    body entirely (e.g. for JWT-bearer assertion flows).
    """

    name: str
    endpoints: EndpointSet
    parse_user_info: Callable[[str], UserInfo]
    before_access_token: RequestHook | None = None
    after_access_token: RequestHook | None = None
    before_user_info: RequestHook | None = None


@dataclass(frozen=True)
class OAuth1Provider:
    """
    An OAuth1 identity provider plug-in.

    RFC 5849 has no state parameter; set supports_state for providers that
    echo one back anyway.
    """

    name: str
    endpoints: EndpointSet
    parse_user_info: Callable[[str], UserInfo]
    before_access_token: RequestHook | None = None
    after_access_token: RequestHook | None = None
    before_user_info: RequestHook | None = None
    supports_state: bool = False
