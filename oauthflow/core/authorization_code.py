"""
OAuth2 authorization code flow engine.

Drives the handshake for any OAuth2 provider plug-in:
- compose the login URI
- exchange the callback code for tokens
- refresh expired tokens
- fetch and normalize the user profile

AsyncAuthorizationCodeEngine mirrors AuthorizationCodeEngine one to one;
it only suspends at the network call.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Callable

import httpx

from oauthflow.config import ProviderConfig
from oauthflow.core.domain import (
    AUTHORIZATION_CODE_GRANT,
    REFRESH_TOKEN_GRANT,
    CallbackParameters,
    TokenState,
    UserInfo,
)
from oauthflow.core.exceptions import (
    ConfigurationError,
    FlowStage,
    ProviderError,
    flow_stage,
)
from oauthflow.core.ports import (
    AsyncHttpTransport,
    HttpTransport,
    OAuth2Provider,
    RequestHookArgs,
)
from oauthflow.core.tokens import REFRESH_TOKEN_KEY, apply_token_response
from oauthflow.infrastructure.authenticators import QueryParameterAuthenticator
from oauthflow.infrastructure.transport import (
    AsyncRequestFactory,
    RequestFactory,
    RestClient,
    RestRequest,
)


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def default_access_token_request(args: RequestHookArgs) -> None:
    """
    Build the standard token request body.

    authorization_code grant: code, client_id, client_secret, redirect_uri,
    grant_type. refresh_token grant: refresh_token, client_id,
    client_secret, grant_type.
    """
    config = args.configuration
    if args.grant_type == REFRESH_TOKEN_GRANT:
        args.request.add_parameters(
            {
                "refresh_token": args.parameters.require(REFRESH_TOKEN_KEY),
                "client_id": config.client_id,
                "client_secret": config.client_secret,
                "grant_type": args.grant_type,
            }
        )
    else:
        args.request.add_parameters(
            {
                "code": args.parameters.require("code"),
                "client_id": config.client_id,
                "client_secret": config.client_secret,
                "redirect_uri": config.redirect_uri,
                "grant_type": args.grant_type,
            }
        )


class _AuthorizationCodeFlow:
    """Request building and state handling shared by both engines."""

    def __init__(
        self,
        provider: OAuth2Provider,
        configuration: ProviderConfig,
        factory: Any,
        clock: Callable[[], datetime] | None = None,
    ):
        self.provider = provider
        self.configuration = configuration
        self._factory = factory
        self._clock = clock or _utcnow
        self._token: TokenState | None = None
        self._state: str | None = None

    @property
    def name(self) -> str:
        """Friendly name of the provider."""
        return self.provider.name

    @property
    def state(self) -> str | None:
        """State posted back by the provider with the last callback."""
        return self._state

    @property
    def token(self) -> TokenState | None:
        return self._token

    @property
    def access_token(self) -> str | None:
        return self._token.access_token if self._token else None

    @property
    def refresh_token(self) -> str | None:
        return self._token.refresh_token if self._token else None

    @property
    def token_type(self) -> str | None:
        return self._token.token_type if self._token else None

    @property
    def expires_at(self) -> datetime | None:
        return self._token.expires_at if self._token else None

    @property
    def grant_type(self) -> str | None:
        """Grant that produced the current token."""
        return self._token.grant_type if self._token else None

    def build_login_uri(self, state: str | None = None) -> str:
        """
        Compose the URI the user is sent to in order to start the flow.

        scope is included only when configured; state only when given.
        No network call is made.
        """
        endpoint = self.provider.endpoints.require("authorize")
        client = self._factory.create_client(endpoint)
        request = self._factory.create_request(endpoint)
        request.add_parameters(
            {
                "response_type": "code",
                "client_id": self.configuration.client_id,
                "redirect_uri": self.configuration.redirect_uri,
                "scope": self.configuration.scope or None,
                "state": state or None,
            }
        )
        return client.build_uri(request)

    def _check_callback(self, parameters: Any) -> CallbackParameters:
        params = CallbackParameters.coerce(parameters)
        error = params.get("error")
        if error:
            logger.warning(
                f"{self.name} returned an error in the callback: {error}",
                extra={"provider": self.name, "error": error},
            )
            raise ProviderError(
                error,
                description=params.get("error_description"),
                uri=params.get("error_uri"),
            )
        self._state = params.get("state")
        return params

    def _refresh_parameters(self, refresh_token: str | None) -> CallbackParameters:
        token = refresh_token or self.refresh_token
        if not token:
            raise ConfigurationError("Token never fetched and refresh token not provided")
        return CallbackParameters([(REFRESH_TOKEN_KEY, token)])

    def _can_reuse_token(self, force_update: bool) -> bool:
        return (
            not force_update
            and self._token is not None
            and self._token.is_valid_at(self._clock())
        )

    def _prepare_token_request(
        self, parameters: CallbackParameters, grant_type: str
    ) -> tuple[RestClient, RestRequest]:
        endpoint = self.provider.endpoints.require("token")
        client = self._factory.create_client(endpoint)
        request = self._factory.create_request(endpoint, "POST")

        hook = self.provider.before_access_token or default_access_token_request
        hook(
            RequestHookArgs(
                configuration=self.configuration,
                client=client,
                request=request,
                parameters=parameters,
                grant_type=grant_type,
                token=self._token,
            )
        )
        return client, request

    def _handle_token_response(
        self, parameters: CallbackParameters, grant_type: str, response: httpx.Response
    ) -> str:
        if self.provider.after_access_token:
            self.provider.after_access_token(
                RequestHookArgs(
                    configuration=self.configuration,
                    response=response,
                    parameters=parameters,
                    grant_type=grant_type,
                    token=self._token,
                )
            )

        self._token = apply_token_response(
            self._token, response.text, grant_type, self._clock()
        )
        logger.info(
            f"Obtained {self.name} access token",
            extra={
                "provider": self.name,
                "grant_type": grant_type,
                "has_refresh_token": self._token.refresh_token is not None,
                "expires_at": self._token.expires_at,
            },
        )
        return self._token.access_token

    def _prepare_user_info_request(self) -> tuple[RestClient, RestRequest]:
        if self._token is None:
            raise ConfigurationError("No access token: complete the code exchange first")

        endpoint = self.provider.endpoints.require("user_info")
        client = self._factory.create_client(endpoint)
        client.authenticator = QueryParameterAuthenticator(self._token.access_token)
        request = self._factory.create_request(endpoint)

        if self.provider.before_user_info:
            self.provider.before_user_info(
                RequestHookArgs(
                    configuration=self.configuration,
                    client=client,
                    request=request,
                    token=self._token,
                )
            )
        return client, request

    def _parse_user_info(self, response: httpx.Response) -> UserInfo:
        user_info = self.provider.parse_user_info(response.text)
        return user_info.model_copy(update={"provider_name": self.name})


class AuthorizationCodeEngine(_AuthorizationCodeFlow):
    """
    Blocking OAuth2 engine for one provider and one set of credentials.

    Not safe for concurrent calls: exchanges and refreshes mutate the
    engine's token state, so use one engine per user session.

    Args:
        provider: Provider plug-in (endpoints, parser, hooks)
        configuration: Client credentials
        factory: HTTP transport, defaults to RequestFactory()
        clock: Returns the current time; used for token expiry
    """

    def __init__(
        self,
        provider: OAuth2Provider,
        configuration: ProviderConfig,
        factory: HttpTransport | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        super().__init__(provider, configuration, factory or RequestFactory(), clock)

    def exchange_code_for_token(self, parameters: Any) -> UserInfo:
        """
        Complete the flow from the provider's callback parameters.

        Exchanges the code for tokens, then fetches the user's profile.

        Args:
            parameters: Callback query parameters (code, state, error)

        Returns:
            Normalized profile stamped with the provider name

        Raises:
            ProviderError: If the callback carries an error
            UnexpectedResponseError: If code or access_token is missing
            TransportError: If a request fails
        """
        self.exchange_code(parameters)
        return self.get_user_info()

    def exchange_code(self, parameters: Any) -> str:
        """Exchange the callback code for tokens and return the access token."""
        with flow_stage(FlowStage.CODE_EXCHANGE):
            params = self._check_callback(parameters)
            logger.info(
                f"Exchanging authorization code with {self.name}",
                extra={"provider": self.name},
            )
            return self._query_access_token(params, AUTHORIZATION_CODE_GRANT)

    def get_current_token(
        self, refresh_token: str | None = None, force_update: bool = False
    ) -> str:
        """
        Return a usable access token, refreshing it when needed.

        A cached, unexpired token is returned without any network call.

        Args:
            refresh_token: Refresh token to use instead of the stored one
            force_update: Refresh even if the cached token is still valid

        Raises:
            ConfigurationError: If no refresh token is available
        """
        if self._can_reuse_token(force_update):
            return self._token.access_token

        with flow_stage(FlowStage.REFRESH):
            params = self._refresh_parameters(refresh_token)
            logger.info(f"Refreshing {self.name} access token", extra={"provider": self.name})
            return self._query_access_token(params, REFRESH_TOKEN_GRANT)

    def get_user_info(self) -> UserInfo:
        """Fetch the authenticated user's profile with the current token."""
        with flow_stage(FlowStage.PROFILE_FETCH):
            client, request = self._prepare_user_info_request()
            response = self._factory.execute(client, request)
            return self._parse_user_info(response)

    def _query_access_token(self, parameters: CallbackParameters, grant_type: str) -> str:
        client, request = self._prepare_token_request(parameters, grant_type)
        response = self._factory.execute(client, request)
        return self._handle_token_response(parameters, grant_type, response)


class AsyncAuthorizationCodeEngine(_AuthorizationCodeFlow):
    """
    Non-blocking OAuth2 engine.

    Same sequence as AuthorizationCodeEngine; hooks and parsing run
    synchronously between network calls. Cancel the awaiting task to
    abandon an in-flight request.
    """

    def __init__(
        self,
        provider: OAuth2Provider,
        configuration: ProviderConfig,
        factory: AsyncHttpTransport | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        super().__init__(provider, configuration, factory or AsyncRequestFactory(), clock)

    async def exchange_code_for_token(self, parameters: Any) -> UserInfo:
        """Complete the flow from the provider's callback parameters."""
        await self.exchange_code(parameters)
        return await self.get_user_info()

    async def exchange_code(self, parameters: Any) -> str:
        """Exchange the callback code for tokens and return the access token."""
        with flow_stage(FlowStage.CODE_EXCHANGE):
            params = self._check_callback(parameters)
            logger.info(
                f"Exchanging authorization code with {self.name}",
                extra={"provider": self.name},
            )
            return await self._query_access_token(params, AUTHORIZATION_CODE_GRANT)

    async def get_current_token(
        self, refresh_token: str | None = None, force_update: bool = False
    ) -> str:
        """Return a usable access token, refreshing it when needed."""
        if self._can_reuse_token(force_update):
            return self._token.access_token

        with flow_stage(FlowStage.REFRESH):
            params = self._refresh_parameters(refresh_token)
            logger.info(f"Refreshing {self.name} access token", extra={"provider": self.name})
            return await self._query_access_token(params, REFRESH_TOKEN_GRANT)

    async def get_user_info(self) -> UserInfo:
        """Fetch the authenticated user's profile with the current token."""
        with flow_stage(FlowStage.PROFILE_FETCH):
            client, request = self._prepare_user_info_request()
            response = await self._factory.execute(client, request)
            return self._parse_user_info(response)

    async def _query_access_token(
        self, parameters: CallbackParameters, grant_type: str
    ) -> str:
        client, request = self._prepare_token_request(parameters, grant_type)
        response = await self._factory.execute(client, request)
        return self._handle_token_response(parameters, grant_type, response)
