"""
Tests for the OAuth1 request token engines.
"""

from dataclasses import replace
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from respx import MockRouter

from oauthflow.core.exceptions import (
    ConfigurationError,
    FlowStage,
    NotSupportedError,
    UnexpectedResponseError,
)
from oauthflow.core.request_token import AsyncRequestTokenEngine, RequestTokenEngine


REQUEST_TOKEN_URL = "https://auth.example.com/oauth/request_token"
ACCESS_TOKEN_URL = "https://auth.example.com/oauth/access_token"
PROFILE_URL = "https://api.example.com/me"


def _authorization(route) -> str:
    return route.calls.last.request.headers["Authorization"]


@pytest.fixture
def engine(oauth1_provider, provider_config):
    return RequestTokenEngine(oauth1_provider, provider_config)


@pytest.fixture
def request_token_route(respx_mock: MockRouter):
    return respx_mock.post(REQUEST_TOKEN_URL).mock(
        return_value=httpx.Response(
            200, text="oauth_token=RT&oauth_token_secret=RS&oauth_callback_confirmed=true"
        )
    )


# ============================================================================
# Login URI
# ============================================================================


class TestBuildLoginUri:
    """Tests for the request token leg and the authorization URI."""

    def test_fetches_request_token_first(self, engine, request_token_route):
        uri = engine.build_login_uri()

        assert uri == "https://auth.example.com/oauth/authorize?oauth_token=RT"
        assert engine.request_token.access_token == "RT"
        assert engine.request_token.access_token_secret == "RS"
        assert engine.token is None

        header = _authorization(request_token_route)
        assert 'oauth_consumer_key="client-id"' in header
        assert "oauth_callback=" in header
        assert "oauth_token=" not in header

    def test_state_not_supported(self, engine, respx_mock: MockRouter):
        with pytest.raises(NotSupportedError):
            engine.build_login_uri(state="s-1")

        assert len(respx_mock.calls) == 0

    def test_state_for_provider_that_supports_it(
        self, oauth1_provider, provider_config, request_token_route
    ):
        provider = replace(oauth1_provider, supports_state=True)
        engine = RequestTokenEngine(provider, provider_config)

        params = parse_qs(urlsplit(engine.build_login_uri(state="s-1")).query)

        assert params == {"oauth_token": ["RT"], "state": ["s-1"]}

    def test_json_request_token_response_rejected(self, engine, respx_mock: MockRouter):
        respx_mock.post(REQUEST_TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"oauth_token": "RT", "oauth_token_secret": "RS"})
        )

        with pytest.raises(UnexpectedResponseError) as exc_info:
            engine.build_login_uri()

        assert exc_info.value.stage is FlowStage.REQUEST_TOKEN

    def test_access_token_hooks_wrap_request_token_call(
        self, oauth1_provider, provider_config, request_token_route
    ):
        calls = []
        provider = replace(
            oauth1_provider,
            before_access_token=lambda args: calls.append(("before", args.request.method)),
            after_access_token=lambda args: calls.append(("after", args.response.status_code)),
        )

        RequestTokenEngine(provider, provider_config).query_request_token()

        assert calls == [("before", "POST"), ("after", 200)]


# ============================================================================
# Verifier exchange
# ============================================================================


class TestExchangeVerifier:
    """Tests for the access token leg and the signed profile fetch."""

    def test_full_flow_signs_profile_with_access_token(
        self, engine, request_token_route, profile_payload, respx_mock: MockRouter
    ):
        access_route = respx_mock.post(ACCESS_TOKEN_URL).mock(
            return_value=httpx.Response(200, text="oauth_token=AT&oauth_token_secret=AS")
        )
        profile_route = respx_mock.get(PROFILE_URL).mock(
            return_value=httpx.Response(200, json=profile_payload)
        )
        engine.build_login_uri()

        user = engine.exchange_verifier_for_user_info("oauth_token=RT&oauth_verifier=V1")

        access_header = _authorization(access_route)
        assert 'oauth_token="RT"' in access_header
        assert 'oauth_verifier="V1"' in access_header

        profile_header = _authorization(profile_route)
        assert 'oauth_token="AT"' in profile_header
        assert 'oauth_token="RT"' not in profile_header
        assert "oauth_verifier" not in profile_header

        assert engine.access_token == "AT"
        assert engine.access_token_secret == "AS"
        assert engine.state is None
        assert user.id == "user-42"
        assert user.provider_name == "Example1"

    def test_foreign_request_token_rejected(self, engine, request_token_route, respx_mock: MockRouter):
        engine.build_login_uri()

        with pytest.raises(UnexpectedResponseError) as exc_info:
            engine.exchange_verifier_for_user_info({"oauth_token": "OTHER", "oauth_verifier": "V1"})

        assert exc_info.value.field == "oauth_token"
        assert exc_info.value.stage is FlowStage.CODE_EXCHANGE
        assert len(respx_mock.calls) == 1

    def test_missing_oauth_token(self, engine, respx_mock: MockRouter):
        with pytest.raises(UnexpectedResponseError) as exc_info:
            engine.exchange_verifier_for_user_info({"oauth_verifier": "V1"})

        assert exc_info.value.field == "oauth_token"

    def test_missing_verifier(self, engine, respx_mock: MockRouter):
        with pytest.raises(UnexpectedResponseError) as exc_info:
            engine.exchange_verifier_for_user_info({"oauth_token": "RT"})

        assert exc_info.value.field == "oauth_verifier"
        assert len(respx_mock.calls) == 0

    def test_missing_token_secret_in_response(self, engine, respx_mock: MockRouter):
        respx_mock.post(ACCESS_TOKEN_URL).mock(return_value=httpx.Response(200, text="oauth_token=AT"))

        with pytest.raises(UnexpectedResponseError) as exc_info:
            engine.exchange_verifier_for_user_info({"oauth_token": "RT", "oauth_verifier": "V1"})

        assert exc_info.value.field == "oauth_token_secret"
        assert engine.token is None

    def test_before_user_info_hook(
        self, oauth1_provider, provider_config, profile_payload, respx_mock: MockRouter
    ):
        provider = replace(
            oauth1_provider,
            before_user_info=lambda args: args.request.add_parameter("include_email", "true"),
        )
        respx_mock.post(ACCESS_TOKEN_URL).mock(
            return_value=httpx.Response(200, text="oauth_token=AT&oauth_token_secret=AS")
        )
        route = respx_mock.get(PROFILE_URL).mock(return_value=httpx.Response(200, json=profile_payload))

        RequestTokenEngine(provider, provider_config).exchange_verifier_for_user_info(
            {"oauth_token": "RT", "oauth_verifier": "V1"}
        )

        assert route.calls.last.request.url.params["include_email"] == "true"

    def test_user_info_before_exchange(self, engine):
        with pytest.raises(ConfigurationError):
            engine.get_user_info()


# ============================================================================
# Async engine
# ============================================================================


class TestAsyncEngine:
    @pytest.mark.asyncio
    async def test_full_flow(
        self, oauth1_provider, provider_config, request_token_route, profile_payload,
        respx_mock: MockRouter,
    ):
        respx_mock.post(ACCESS_TOKEN_URL).mock(
            return_value=httpx.Response(200, text="oauth_token=AT&oauth_token_secret=AS")
        )
        profile_route = respx_mock.get(PROFILE_URL).mock(
            return_value=httpx.Response(200, json=profile_payload)
        )
        engine = AsyncRequestTokenEngine(oauth1_provider, provider_config)

        uri = await engine.build_login_uri()
        user = await engine.exchange_verifier_for_user_info(
            {"oauth_token": "RT", "oauth_verifier": "V1"}
        )

        assert uri.endswith("oauth_token=RT")
        assert 'oauth_token="AT"' in _authorization(profile_route)
        assert user.provider_name == "Example1"

    @pytest.mark.asyncio
    async def test_state_not_supported(self, oauth1_provider, provider_config):
        engine = AsyncRequestTokenEngine(oauth1_provider, provider_config)

        with pytest.raises(NotSupportedError):
            await engine.build_login_uri(state="s")
