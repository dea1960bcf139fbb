"""
Token response parsing and token state transitions.

Providers return token responses either as a JSON object or as a
URL-encoded query string, without declaring which in advance. The parser
here tries JSON first and falls back to the query string format.
"""

import json
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import parse_qs

from oauthflow.core.domain import (
    AUTHORIZATION_CODE_GRANT,
    REFRESH_TOKEN_GRANT,
    OAuth1TokenState,
    TokenState,
)
from oauthflow.core.exceptions import UnexpectedResponseError


ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"
EXPIRES_KEY = "expires_in"
TOKEN_TYPE_KEY = "token_type"

OAUTH_TOKEN_KEY = "oauth_token"
OAUTH_TOKEN_SECRET_KEY = "oauth_token_secret"

_MISSING = object()

_EXPIRES_IN_MIN = -(2**31)
_EXPIRES_IN_MAX = 2**31 - 1


def _load_json_object(content: str) -> dict[str, Any] | None:
    """Load content as a JSON object, or return None if it is not one."""
    try:
        document = json.loads(content)
    except ValueError:
        return None
    return document if isinstance(document, dict) else None


def _select(document: dict[str, Any], path: str) -> Any:
    """Select a value by dotted path, e.g. ``data.access_token``."""
    node: Any = document
    for part in path.split("."):
        if isinstance(node, dict) and part in node:
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return _MISSING
    return node


def _to_text(value: Any) -> str | None:
    if value is None or value is _MISSING:
        return None
    if isinstance(value, str):
        return value
    # Numbers, booleans and nested values keep their JSON spelling
    return json.dumps(value)


def parse_token_field(content: str | None, key: str | None) -> str | None:
    """
    Extract a field from a token response.

    Args:
        content: Raw response body (JSON object or query string)
        key: Field name, or a dotted path into a JSON object

    Returns:
        The field value as a string, or None if it is not present.
        Never raises: callers decide which fields are required.
    """
    if not content or not key:
        return None

    document = _load_json_object(content)
    if document is not None:
        return _to_text(_select(document, key))

    values = parse_qs(content, keep_blank_values=True).get(key)
    return values[0] if values else None


def parse_expires_in(value: str | None) -> int | None:
    """Parse expires_in as whole seconds in signed 32-bit range; anything else yields None."""
    if value is None:
        return None
    try:
        seconds = int(value.strip())
    except ValueError:
        return None
    if not _EXPIRES_IN_MIN <= seconds <= _EXPIRES_IN_MAX:
        return None
    return seconds


def apply_token_response(
    previous: TokenState | None,
    content: str | None,
    grant_type: str,
    now: datetime,
) -> TokenState:
    """
    Compute the token state that results from a token endpoint response.

    A refresh-grant response that omits refresh_token keeps the previously
    stored refresh token; one that carries a new refresh token replaces it.
    An authorization-code response always takes whatever it carries.

    Args:
        previous: Current token state, None before the first exchange
        content: Raw token endpoint response body
        grant_type: Grant the request was made with
        now: Reference time for computing expires_at

    Returns:
        The new token state

    Raises:
        UnexpectedResponseError: If access_token is missing or empty
    """
    access_token = parse_token_field(content, ACCESS_TOKEN_KEY)
    if not access_token:
        raise UnexpectedResponseError(ACCESS_TOKEN_KEY)

    refresh_token = parse_token_field(content, REFRESH_TOKEN_KEY) or None
    if grant_type == REFRESH_TOKEN_GRANT and refresh_token is None and previous is not None:
        refresh_token = previous.refresh_token

    expires_in = parse_expires_in(parse_token_field(content, EXPIRES_KEY))
    expires_at = now + timedelta(seconds=expires_in) if expires_in is not None else None

    return TokenState(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type=parse_token_field(content, TOKEN_TYPE_KEY),
        expires_at=expires_at,
        grant_type=grant_type or AUTHORIZATION_CODE_GRANT,
    )


def parse_oauth1_credentials(content: str | None) -> OAuth1TokenState:
    """
    Parse an OAuth1 token response, which is always a query string.

    Raises:
        UnexpectedResponseError: If oauth_token or oauth_token_secret is missing
    """
    values = parse_qs(content or "", keep_blank_values=True)

    token = values.get(OAUTH_TOKEN_KEY, [""])[0]
    if not token:
        raise UnexpectedResponseError(OAUTH_TOKEN_KEY)

    secret = values.get(OAUTH_TOKEN_SECRET_KEY, [""])[0]
    if not secret:
        raise UnexpectedResponseError(OAUTH_TOKEN_SECRET_KEY)

    return OAuth1TokenState(access_token=token, access_token_secret=secret)
