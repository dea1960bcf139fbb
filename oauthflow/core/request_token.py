"""
OAuth1 three-legged flow engine.

Request token, user authorization, verifier exchange, then a signed
profile request. Signatures are HMAC-SHA1, produced by authlib.
"""

import logging
from typing import Any

import httpx

from oauthflow.config import ProviderConfig
from oauthflow.core.domain import CallbackParameters, OAuth1TokenState, UserInfo
from oauthflow.core.exceptions import (
    ConfigurationError,
    FlowStage,
    NotSupportedError,
    UnexpectedResponseError,
    flow_stage,
)
from oauthflow.core.ports import (
    AsyncHttpTransport,
    HttpTransport,
    OAuth1Provider,
    RequestHookArgs,
)
from oauthflow.core.tokens import OAUTH_TOKEN_KEY, parse_oauth1_credentials
from oauthflow.infrastructure.authenticators import (
    oauth1_access_token_auth,
    oauth1_protected_resource_auth,
    oauth1_request_token_auth,
)
from oauthflow.infrastructure.transport import (
    AsyncRequestFactory,
    RequestFactory,
    RestClient,
    RestRequest,
)


logger = logging.getLogger(__name__)

OAUTH_VERIFIER_KEY = "oauth_verifier"


class _RequestTokenFlow:
    """Request building and credential handling shared by both engines."""

    def __init__(
        self,
        provider: OAuth1Provider,
        configuration: ProviderConfig,
        factory: Any,
    ):
        self.provider = provider
        self.configuration = configuration
        self._factory = factory
        self._request_token: OAuth1TokenState | None = None
        self._token: OAuth1TokenState | None = None

    @property
    def name(self) -> str:
        return self.provider.name

    @property
    def state(self) -> None:
        """OAuth1 callbacks carry no state."""
        return None

    @property
    def token(self) -> OAuth1TokenState | None:
        """Final access credentials, once the verifier has been exchanged."""
        return self._token

    @property
    def request_token(self) -> OAuth1TokenState | None:
        """Temporary credentials issued for the login URI."""
        return self._request_token

    @property
    def access_token(self) -> str | None:
        return self._token.access_token if self._token else None

    @property
    def access_token_secret(self) -> str | None:
        return self._token.access_token_secret if self._token else None

    def _check_state(self, state: str | None) -> None:
        if state and not self.provider.supports_state:
            raise NotSupportedError(
                f"{self.name} uses OAuth1, which does not support a state parameter"
            )

    def _compose_login_uri(self, state: str | None) -> str:
        endpoint = self.provider.endpoints.require("authorize")
        client = self._factory.create_client(endpoint)
        request = self._factory.create_request(endpoint)
        request.add_parameter(OAUTH_TOKEN_KEY, self._request_token.access_token)
        if self.provider.supports_state:
            request.add_parameter("state", state or None)
        return client.build_uri(request)

    def _hook_args(self, **kwargs: Any) -> RequestHookArgs:
        return RequestHookArgs(configuration=self.configuration, **kwargs)

    def _prepare_request_token_request(self) -> tuple[RestClient, RestRequest]:
        endpoint = self.provider.endpoints.require("request_token")
        client = self._factory.create_client(endpoint)
        client.authenticator = oauth1_request_token_auth(
            self.configuration.client_id,
            self.configuration.client_secret,
            self.configuration.redirect_uri,
        )
        request = self._factory.create_request(endpoint, "POST")

        if self.provider.before_access_token:
            self.provider.before_access_token(self._hook_args(client=client, request=request))
        return client, request

    def _handle_request_token_response(self, response: httpx.Response) -> OAuth1TokenState:
        if self.provider.after_access_token:
            self.provider.after_access_token(self._hook_args(response=response))

        self._request_token = parse_oauth1_credentials(response.text)
        logger.info(f"Obtained {self.name} request token", extra={"provider": self.name})
        return self._request_token

    def _prepare_access_token_request(self, parameters: Any) -> tuple[RestClient, RestRequest]:
        params = CallbackParameters.coerce(parameters)
        oauth_token = params.require(OAUTH_TOKEN_KEY)
        if self._request_token and oauth_token != self._request_token.access_token:
            logger.warning(
                f"{self.name} callback names a request token this engine did not issue",
                extra={"provider": self.name},
            )
            raise UnexpectedResponseError(OAUTH_TOKEN_KEY)
        verifier = params.require(OAUTH_VERIFIER_KEY)

        token_secret = self._request_token.access_token_secret if self._request_token else ""
        endpoint = self.provider.endpoints.require("token")
        client = self._factory.create_client(endpoint)
        client.authenticator = oauth1_access_token_auth(
            self.configuration.client_id,
            self.configuration.client_secret,
            oauth_token,
            token_secret,
            verifier,
        )
        request = self._factory.create_request(endpoint, "POST")
        return client, request

    def _handle_access_token_response(self, response: httpx.Response) -> OAuth1TokenState:
        self._token = parse_oauth1_credentials(response.text)
        logger.info(f"Obtained {self.name} access token", extra={"provider": self.name})
        return self._token

    def _prepare_user_info_request(self) -> tuple[RestClient, RestRequest]:
        if self._token is None:
            raise ConfigurationError("No access token: exchange the verifier first")

        endpoint = self.provider.endpoints.require("user_info")
        client = self._factory.create_client(endpoint)
        client.authenticator = oauth1_protected_resource_auth(
            self.configuration.client_id,
            self.configuration.client_secret,
            self._token.access_token,
            self._token.access_token_secret,
        )
        request = self._factory.create_request(endpoint)

        if self.provider.before_user_info:
            self.provider.before_user_info(
                self._hook_args(client=client, request=request, token=self._token)
            )
        return client, request

    def _parse_user_info(self, response: httpx.Response) -> UserInfo:
        user_info = self.provider.parse_user_info(response.text)
        return user_info.model_copy(update={"provider_name": self.name})


class RequestTokenEngine(_RequestTokenFlow):
    """
    Blocking OAuth1 engine for one provider and one set of credentials.

    One engine per user session: the request token issued for the login
    URI is checked against the callback.
    """

    def __init__(
        self,
        provider: OAuth1Provider,
        configuration: ProviderConfig,
        factory: HttpTransport | None = None,
    ):
        super().__init__(provider, configuration, factory or RequestFactory())

    def build_login_uri(self, state: str | None = None) -> str:
        """
        Obtain a request token and compose the authorization URI.

        Raises:
            NotSupportedError: If state is given and the provider cannot echo it
        """
        self._check_state(state)
        self.query_request_token()
        return self._compose_login_uri(state)

    def query_request_token(self) -> OAuth1TokenState:
        """Fetch temporary credentials from the request token endpoint."""
        with flow_stage(FlowStage.REQUEST_TOKEN):
            client, request = self._prepare_request_token_request()
            response = self._factory.execute(client, request)
            return self._handle_request_token_response(response)

    def exchange_verifier_for_user_info(self, parameters: Any) -> UserInfo:
        """
        Complete the flow from the provider's callback parameters.

        Args:
            parameters: Callback query parameters (oauth_token, oauth_verifier)

        Raises:
            UnexpectedResponseError: If a required callback or response field
                is missing, or the callback names a foreign request token
            TransportError: If a request fails
        """
        with flow_stage(FlowStage.CODE_EXCHANGE):
            client, request = self._prepare_access_token_request(parameters)
            response = self._factory.execute(client, request)
            self._handle_access_token_response(response)
        return self.get_user_info()

    def get_user_info(self) -> UserInfo:
        """Fetch the user's profile with a request signed by the access token."""
        with flow_stage(FlowStage.PROFILE_FETCH):
            client, request = self._prepare_user_info_request()
            response = self._factory.execute(client, request)
            return self._parse_user_info(response)


class AsyncRequestTokenEngine(_RequestTokenFlow):
    """Non-blocking mirror of RequestTokenEngine."""

    def __init__(
        self,
        provider: OAuth1Provider,
        configuration: ProviderConfig,
        factory: AsyncHttpTransport | None = None,
    ):
        super().__init__(provider, configuration, factory or AsyncRequestFactory())

    async def build_login_uri(self, state: str | None = None) -> str:
        self._check_state(state)
        await self.query_request_token()
        return self._compose_login_uri(state)

    async def query_request_token(self) -> OAuth1TokenState:
        with flow_stage(FlowStage.REQUEST_TOKEN):
            client, request = self._prepare_request_token_request()
            response = await self._factory.execute(client, request)
            return self._handle_request_token_response(response)

    async def exchange_verifier_for_user_info(self, parameters: Any) -> UserInfo:
        with flow_stage(FlowStage.CODE_EXCHANGE):
            client, request = self._prepare_access_token_request(parameters)
            response = await self._factory.execute(client, request)
            self._handle_access_token_response(response)
        return await self.get_user_info()

    async def get_user_info(self) -> UserInfo:
        with flow_stage(FlowStage.PROFILE_FETCH):
            client, request = self._prepare_user_info_request()
            response = await self._factory.execute(client, request)
            return self._parse_user_info(response)
