"""
Mail.Ru OAuth2 provider.

The REST API (users.getInfo) requires a request signature:
md5 over the parameters sorted by name, concatenated as name=value,
followed by the client secret.
"""

import hashlib

from oauthflow.core.domain import AvatarUri, Endpoint, EndpointSet, UserInfo
from oauthflow.core.ports import OAuth2Provider, RequestHookArgs
from oauthflow.infrastructure.authenticators import QueryParameterAuthenticator
from oauthflow.providers.parsing import load_json, require_text, text


TOKEN_PARAMETER = "oauth_token"


def sign_parameters(parameters: list[tuple[str, str]], client_secret: str) -> str:
    """Compute the Mail.Ru API signature for a set of parameters."""
    payload = "".join(f"{name}={value}" for name, value in sorted(parameters))
    return hashlib.md5((payload + client_secret).encode("utf-8")).hexdigest()


def sign_user_info_request(args: RequestHookArgs) -> None:
    """
    Add users.getInfo parameters and the request signature.

    The token travels as oauth_token in the query string, so it takes
    part in the signature without being added to the request twice.
    """
    access_token = args.token.access_token
    args.client.authenticator = QueryParameterAuthenticator(
        access_token, parameter=TOKEN_PARAMETER
    )
    args.request.add_parameters(
        {
            "app_id": args.configuration.client_id,
            "method": "users.getInfo",
            "secure": "1",
            "session_key": access_token,
        }
    )
    signed = args.request.parameters + [(TOKEN_PARAMETER, access_token)]
    args.request.add_parameter("sig", sign_parameters(signed, args.configuration.client_secret))


def parse_user_info(content: str) -> UserInfo:
    users = load_json(content, expected=list)
    user = users[0] if users and isinstance(users[0], dict) else {}
    return UserInfo(
        id=require_text(user, "uid"),
        first_name=text(user.get("first_name")),
        last_name=text(user.get("last_name")),
        email=text(user.get("email")),
        avatar=AvatarUri(normal=text(user.get("pic"))),
    )


MAILRU = OAuth2Provider(
    name="MailRu",
    endpoints=EndpointSet(
        authorize=Endpoint(base_uri="https://connect.mail.ru", resource_path="/oauth/authorize"),
        token=Endpoint(base_uri="https://connect.mail.ru", resource_path="/oauth/token"),
        user_info=Endpoint(base_uri="http://www.appsmail.ru", resource_path="/platform/api"),
    ),
    parse_user_info=parse_user_info,
    before_user_info=sign_user_info_request,
)
