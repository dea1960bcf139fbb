"""
Request authenticators.

Each authenticator is an httpx.Auth strategy attached to a RestClient.
OAuth2 providers attach the access token either as a query parameter or
as an Authorization header; OAuth1 requests are signed by authlib.
"""

from typing import Generator

import httpx
from authlib.integrations.httpx_client import OAuth1Auth


class QueryParameterAuthenticator(httpx.Auth):
    """Attach the access token as a query parameter (OAuth2 default)."""

    def __init__(self, access_token: str, parameter: str = "access_token"):
        self.access_token = access_token
        self.parameter = parameter

    def auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        request.url = request.url.copy_add_param(self.parameter, self.access_token)
        yield request


class BearerHeaderAuthenticator(httpx.Auth):
    """Attach the access token as ``Authorization: <token_type> <token>``."""

    def __init__(self, access_token: str, token_type: str = "Bearer"):
        self.access_token = access_token
        self.token_type = token_type

    def auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"{self.token_type} {self.access_token}"
        yield request


def oauth1_request_token_auth(
    client_id: str, client_secret: str, callback_uri: str | None
) -> OAuth1Auth:
    """Signer for the temporary credentials request (no user token yet)."""
    return OAuth1Auth(
        client_id,
        client_secret=client_secret,
        redirect_uri=callback_uri,
    )


def oauth1_access_token_auth(
    client_id: str,
    client_secret: str,
    token: str,
    token_secret: str,
    verifier: str,
) -> OAuth1Auth:
    """Signer for exchanging the request token and verifier for an access token."""
    return OAuth1Auth(
        client_id,
        client_secret=client_secret,
        token=token,
        token_secret=token_secret,
        verifier=verifier,
    )


def oauth1_protected_resource_auth(
    client_id: str, client_secret: str, token: str, token_secret: str
) -> OAuth1Auth:
    """Signer for API calls made with the final access token."""
    return OAuth1Auth(
        client_id,
        client_secret=client_secret,
        token=token,
        token_secret=token_secret,
    )
