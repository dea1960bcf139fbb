"""GitHub OAuth2 provider."""

from oauthflow.core.domain import AvatarUri, Endpoint, EndpointSet, UserInfo
from oauthflow.core.ports import OAuth2Provider, RequestHookArgs
from oauthflow.infrastructure.authenticators import BearerHeaderAuthenticator
from oauthflow.providers.parsing import load_json, require_text, split_name, text


GITHUB_API_ACCEPT = "application/vnd.github.v3+json"


def use_token_header(args: RequestHookArgs) -> None:
    """GitHub's REST API takes ``Authorization: token <t>``."""
    args.client.authenticator = BearerHeaderAuthenticator(
        args.token.access_token, token_type="token"
    )
    args.request.add_header("Accept", GITHUB_API_ACCEPT)


def parse_user_info(content: str) -> UserInfo:
    data = load_json(content)
    first_name, last_name = split_name(text(data.get("name")) or text(data.get("login")))
    avatar_url = text(data.get("avatar_url"))
    return UserInfo(
        id=require_text(data, "id"),
        first_name=first_name,
        last_name=last_name,
        email=text(data.get("email")),
        avatar=AvatarUri(small=avatar_url, normal=avatar_url, large=avatar_url),
    )


GITHUB = OAuth2Provider(
    name="GitHub",
    endpoints=EndpointSet(
        authorize=Endpoint(base_uri="https://github.com", resource_path="/login/oauth/authorize"),
        token=Endpoint(base_uri="https://github.com", resource_path="/login/oauth/access_token"),
        user_info=Endpoint(base_uri="https://api.github.com", resource_path="/user"),
    ),
    parse_user_info=parse_user_info,
    before_user_info=use_token_header,
)
