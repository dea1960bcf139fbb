"""
Tests for the bundled providers: hooks, profile parsers and registry.
"""

import hashlib
import json

import httpx
import pytest
from respx import MockRouter

from oauthflow.config import ProviderConfig
from oauthflow.core.authorization_code import (
    AsyncAuthorizationCodeEngine,
    AuthorizationCodeEngine,
)
from oauthflow.core.domain import CallbackParameters, TokenState
from oauthflow.core.exceptions import UnexpectedResponseError
from oauthflow.core.ports import RequestHookArgs
from oauthflow.core.request_token import AsyncRequestTokenEngine, RequestTokenEngine
from oauthflow.infrastructure.authenticators import (
    BearerHeaderAuthenticator,
    QueryParameterAuthenticator,
)
from oauthflow.infrastructure.transport import RestClient, RestRequest
from oauthflow.providers import facebook, github, mailru, twitter, uber, vsts
from oauthflow.providers.registry import (
    SUPPORTED_PROVIDERS,
    create_async_engine,
    create_engine,
    get_provider,
)


CONFIG = ProviderConfig(
    client_id="client-id",
    client_secret="client-secret",
    redirect_uri="https://app.example.com/callback",
)


def _hook_args(**kwargs) -> RequestHookArgs:
    kwargs.setdefault("client", RestClient(base_uri="https://api.example.com"))
    kwargs.setdefault("request", RestRequest())
    kwargs.setdefault("token", TokenState(access_token="AT"))
    return RequestHookArgs(configuration=CONFIG, **kwargs)


# ============================================================================
# Facebook
# ============================================================================


class TestFacebook:
    def test_requests_profile_fields(self):
        args = _hook_args()

        facebook.add_profile_fields(args)

        assert args.request.get_parameter("fields") == "id,first_name,last_name,email,picture"

    def test_parse_user_info(self):
        content = json.dumps(
            {
                "id": "10",
                "first_name": "Ada",
                "last_name": "Lovelace",
                "email": "ada@example.com",
                "picture": {"data": {"url": "https://fb.example.com/p.jpg"}},
            }
        )

        user = facebook.parse_user_info(content)

        assert user.id == "10"
        assert user.first_name == "Ada"
        assert user.avatar.small == "https://fb.example.com/p.jpg?type=small"
        assert user.avatar.normal == "https://fb.example.com/p.jpg?type=normal"
        assert user.avatar.large == "https://fb.example.com/p.jpg?type=large"

    def test_blank_picture_gives_empty_avatars(self):
        user = facebook.parse_user_info('{"id": "10", "picture": {"data": {"url": ""}}}')

        assert user.avatar.small == ""
        assert user.avatar.large == ""

    def test_missing_id(self):
        with pytest.raises(UnexpectedResponseError) as exc_info:
            facebook.parse_user_info('{"first_name": "Ada"}')

        assert exc_info.value.field == "id"

    def test_non_json_profile(self):
        with pytest.raises(UnexpectedResponseError):
            facebook.parse_user_info("<html></html>")

    def test_full_flow(self, respx_mock: MockRouter):
        respx_mock.post("https://graph.facebook.com/oauth/access_token").mock(
            return_value=httpx.Response(200, json={"access_token": "FB-T", "expires_in": 5183999})
        )
        profile_route = respx_mock.get("https://graph.facebook.com/me").mock(
            return_value=httpx.Response(200, json={"id": "10", "first_name": "Ada"})
        )
        engine = AuthorizationCodeEngine(facebook.FACEBOOK, CONFIG)

        user = engine.exchange_code_for_token({"code": "C1"})

        params = profile_route.calls.last.request.url.params
        assert params["access_token"] == "FB-T"
        assert params["fields"] == facebook.PROFILE_FIELDS
        assert user.provider_name == "Facebook"
        assert engine.build_login_uri().startswith("https://www.facebook.com/dialog/oauth?")


# ============================================================================
# Mail.Ru
# ============================================================================


class TestMailRu:
    def test_signs_user_info_request(self):
        args = _hook_args()

        mailru.sign_user_info_request(args)

        expected = hashlib.md5(
            (
                "app_id=client-id"
                "method=users.getInfo"
                "oauth_token=AT"
                "secure=1"
                "session_key=AT"
                "client-secret"
            ).encode()
        ).hexdigest()
        assert args.request.parameters == [
            ("app_id", "client-id"),
            ("method", "users.getInfo"),
            ("secure", "1"),
            ("session_key", "AT"),
            ("sig", expected),
        ]
        assert isinstance(args.client.authenticator, QueryParameterAuthenticator)
        assert args.client.authenticator.parameter == "oauth_token"

    def test_parse_user_info(self):
        content = json.dumps(
            [
                {
                    "uid": "15410773191172635989",
                    "first_name": "Ivan",
                    "last_name": "Petrov",
                    "email": "ivan@mail.ru",
                    "pic": "https://avt.appsmail.ru/p.jpg",
                }
            ]
        )

        user = mailru.parse_user_info(content)

        assert user.id == "15410773191172635989"
        assert user.email == "ivan@mail.ru"
        assert user.avatar.normal == "https://avt.appsmail.ru/p.jpg"
        assert user.avatar.small is None

    def test_empty_profile_list(self):
        with pytest.raises(UnexpectedResponseError) as exc_info:
            mailru.parse_user_info("[]")

        assert exc_info.value.field == "uid"

    def test_object_instead_of_list(self):
        with pytest.raises(UnexpectedResponseError):
            mailru.parse_user_info('{"uid": "1"}')


# ============================================================================
# Uber
# ============================================================================


class TestUber:
    def test_uses_bearer_header(self):
        args = _hook_args()

        uber.UBER.before_user_info(args)

        assert isinstance(args.client.authenticator, BearerHeaderAuthenticator)
        assert args.client.authenticator.token_type == "Bearer"

    def test_case_insensitive_fields(self):
        content = json.dumps(
            {
                "UUID": "u-1",
                "First_Name": "Uma",
                "last_name": "Ride",
                "EMAIL": "uma@example.com",
                "Picture": "https://uber.example.com/p.png",
            }
        )

        user = uber.parse_user_info(content)

        assert user.id == "u-1"
        assert user.first_name == "Uma"
        assert user.email == "uma@example.com"
        assert user.avatar.small == user.avatar.normal == user.avatar.large

    def test_profile_request_sends_bearer_token(self, respx_mock: MockRouter):
        respx_mock.post("https://login.uber.com/oauth/v2/token").mock(
            return_value=httpx.Response(200, json={"access_token": "UB-T"})
        )
        route = respx_mock.get("https://api.uber.com/v1/me").mock(
            return_value=httpx.Response(200, json={"uuid": "u-1"})
        )

        AuthorizationCodeEngine(uber.UBER, CONFIG).exchange_code_for_token({"code": "C1"})

        assert route.calls.last.request.headers["Authorization"] == "Bearer UB-T"


# ============================================================================
# VSTS
# ============================================================================


class TestVsts:
    def test_code_grant_assertion(self):
        args = _hook_args(parameters=CallbackParameters([("code", "C1")]))

        vsts.build_assertion_request(args)

        assert dict(args.request.parameters) == {
            "client_assertion_type": vsts.CLIENT_ASSERTION_TYPE,
            "client_assertion": "client-secret",
            "grant_type": vsts.JWT_BEARER_GRANT,
            "assertion": "C1",
            "redirect_uri": "https://app.example.com/callback",
        }

    def test_refresh_grant_assertion(self):
        args = _hook_args(parameters=CallbackParameters([("refresh_token", "R1")]))

        vsts.build_assertion_request(args)

        params = dict(args.request.parameters)
        assert params["grant_type"] == "refresh_token"
        assert params["assertion"] == "R1"

    def test_parse_user_info(self):
        content = json.dumps(
            {"id": "abc", "displayName": "Val Studio", "emailAddress": "val@example.com"}
        )

        user = vsts.parse_user_info(content)

        assert user.first_name == "Val Studio"
        assert user.email == "val@example.com"
        assert user.avatar.normal == (
            "https://app.vssps.visualstudio.com/_apis/Profile/Profiles/abc/Avatar"
            "?size=medium&format=png"
        )

    def test_refresh_uses_assertion(self, respx_mock: MockRouter):
        route = respx_mock.post("https://app.vssps.visualstudio.com/oauth2/token").mock(
            return_value=httpx.Response(200, json={"access_token": "VS-T", "expires_in": 3599})
        )
        profile_route = respx_mock.get(
            "https://app.vssps.visualstudio.com/_apis/profile/profiles/me"
        ).mock(return_value=httpx.Response(200, json={"id": "abc"}))
        engine = AuthorizationCodeEngine(vsts.VSTS, CONFIG)

        engine.get_current_token(refresh_token="R1")
        engine.get_user_info()

        body = route.calls.last.request.content.decode()
        assert "assertion=R1" in body
        assert "grant_type=refresh_token" in body
        assert profile_route.calls.last.request.url.params["api-version"] == "1.0"


# ============================================================================
# GitHub
# ============================================================================


class TestGitHub:
    def test_uses_token_header(self):
        args = _hook_args()

        github.use_token_header(args)

        assert args.client.authenticator.token_type == "token"
        assert args.request.headers["Accept"] == github.GITHUB_API_ACCEPT

    def test_parse_user_info(self):
        content = json.dumps(
            {
                "id": 583231,
                "login": "octocat",
                "name": "The Octocat",
                "email": None,
                "avatar_url": "https://avatars.example.com/u/583231",
            }
        )

        user = github.parse_user_info(content)

        assert user.id == "583231"
        assert user.first_name == "The"
        assert user.last_name == "Octocat"
        assert user.email is None
        assert user.avatar.large == "https://avatars.example.com/u/583231"

    def test_login_used_when_name_missing(self):
        user = github.parse_user_info('{"id": 1, "login": "octocat"}')

        assert user.first_name == "octocat"
        assert user.last_name is None


# ============================================================================
# Twitter
# ============================================================================


class TestTwitter:
    def test_requests_email(self):
        args = _hook_args()

        twitter.request_email(args)

        assert args.request.get_parameter("include_email") == "true"

    def test_parse_user_info(self):
        content = json.dumps(
            {
                "id": 6253282,
                "id_str": "6253282",
                "name": "Twitter API",
                "email": "api@example.com",
                "profile_image_url_https": "https://pbs.example.com/img_normal.png",
            }
        )

        user = twitter.parse_user_info(content)

        assert user.id == "6253282"
        assert user.first_name == "Twitter"
        assert user.avatar.small == "https://pbs.example.com/img_mini.png"
        assert user.avatar.normal == "https://pbs.example.com/img_normal.png"
        assert user.avatar.large == "https://pbs.example.com/img_bigger.png"


# ============================================================================
# Registry
# ============================================================================


class TestRegistry:
    def test_supported_providers(self):
        assert SUPPORTED_PROVIDERS == ["facebook", "mailru", "uber", "vsts", "github", "twitter"]

    def test_lookup_ignores_case(self):
        assert get_provider("FaceBook") is facebook.FACEBOOK
        assert get_provider("vsts") is vsts.VSTS

    def test_unknown_provider(self):
        with pytest.raises(KeyError):
            get_provider("myspace")

    def test_create_engine_picks_protocol(self):
        assert isinstance(create_engine("facebook", CONFIG), AuthorizationCodeEngine)
        assert isinstance(create_engine(twitter.TWITTER, CONFIG), RequestTokenEngine)

    def test_create_async_engine_picks_protocol(self):
        assert isinstance(create_async_engine("github", CONFIG), AsyncAuthorizationCodeEngine)
        assert isinstance(create_async_engine("twitter", CONFIG), AsyncRequestTokenEngine)
