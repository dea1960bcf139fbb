"""
Helpers for provider profile parsers.

Profile endpoints return JSON. A body that is not JSON, or a profile
without its identifying fields, is reported as UnexpectedResponseError.
"""

import json
from typing import Any

from oauthflow.core.exceptions import UnexpectedResponseError


USER_INFO_FIELD = "user_info"


def load_json(content: str | None, expected: type = dict) -> Any:
    """
    Decode a profile response body.

    Args:
        content: Raw response body
        expected: Required top-level JSON type (dict or list)

    Raises:
        UnexpectedResponseError: If the body is not JSON of the expected type
    """
    try:
        document = json.loads(content or "")
    except ValueError as e:
        raise UnexpectedResponseError(USER_INFO_FIELD) from e
    if not isinstance(document, expected):
        raise UnexpectedResponseError(USER_INFO_FIELD)
    return document


def text(value: Any) -> str | None:
    """Render a JSON scalar as text; None and empty strings stay None."""
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


def require_text(document: dict[str, Any], key: str) -> str:
    """Get a non-empty field or fail with UnexpectedResponseError."""
    value = text(document.get(key))
    if value is None:
        raise UnexpectedResponseError(key)
    return value


def split_name(name: str | None) -> tuple[str | None, str | None]:
    """Split a display name into first name and the rest."""
    if not name or not name.strip():
        return None, None
    first, _, rest = name.strip().partition(" ")
    return first, rest.strip() or None
