"""Uber OAuth2 provider."""

from typing import Any

from oauthflow.core.domain import AvatarUri, Endpoint, EndpointSet, UserInfo
from oauthflow.core.ports import OAuth2Provider
from oauthflow.providers.hooks import use_bearer_header
from oauthflow.providers.parsing import load_json, text


def _lookup(data: dict[str, Any], key: str) -> str | None:
    """Case-insensitive field lookup."""
    for name, value in data.items():
        if name.lower() == key:
            return text(value)
    return None


def parse_user_info(content: str) -> UserInfo:
    data = load_json(content)
    picture = _lookup(data, "picture")
    return UserInfo(
        id=_lookup(data, "uuid"),
        first_name=_lookup(data, "first_name"),
        last_name=_lookup(data, "last_name"),
        email=_lookup(data, "email"),
        avatar=AvatarUri(small=picture, normal=picture, large=picture),
    )


UBER = OAuth2Provider(
    name="Uber",
    endpoints=EndpointSet(
        authorize=Endpoint(base_uri="https://login.uber.com", resource_path="/oauth/v2/authorize"),
        token=Endpoint(base_uri="https://login.uber.com", resource_path="/oauth/v2/token"),
        user_info=Endpoint(base_uri="https://api.uber.com", resource_path="/v1/me"),
    ),
    parse_user_info=parse_user_info,
    before_user_info=use_bearer_header,
)
