"""Facebook (Graph API) OAuth2 provider."""

from oauthflow.core.domain import AvatarUri, Endpoint, EndpointSet, UserInfo
from oauthflow.core.ports import OAuth2Provider, RequestHookArgs
from oauthflow.providers.parsing import load_json, require_text, text


PROFILE_FIELDS = "id,first_name,last_name,email,picture"


def add_profile_fields(args: RequestHookArgs) -> None:
    """Graph API returns only id and name unless fields are requested."""
    args.request.add_parameter("fields", PROFILE_FIELDS)


def _avatar(picture_url: str | None, size: str) -> str:
    return f"{picture_url}?type={size}" if picture_url else ""


def parse_user_info(content: str) -> UserInfo:
    data = load_json(content)
    picture = data.get("picture") or {}
    picture_url = text((picture.get("data") or {}).get("url"))
    return UserInfo(
        id=require_text(data, "id"),
        first_name=text(data.get("first_name")),
        last_name=text(data.get("last_name")),
        email=text(data.get("email")),
        avatar=AvatarUri(
            small=_avatar(picture_url, "small"),
            normal=_avatar(picture_url, "normal"),
            large=_avatar(picture_url, "large"),
        ),
    )


FACEBOOK = OAuth2Provider(
    name="Facebook",
    endpoints=EndpointSet(
        authorize=Endpoint(base_uri="https://www.facebook.com", resource_path="/dialog/oauth"),
        token=Endpoint(
            base_uri="https://graph.facebook.com", resource_path="/oauth/access_token"
        ),
        user_info=Endpoint(base_uri="https://graph.facebook.com", resource_path="/me"),
    ),
    parse_user_info=parse_user_info,
    before_user_info=add_profile_fields,
)
