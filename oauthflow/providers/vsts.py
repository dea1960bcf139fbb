"""
Visual Studio Team Services (Azure DevOps) OAuth2 provider.

The token endpoint expects a JWT-bearer assertion instead of the
standard code/client_secret body, for both the code and refresh grants.
"""

from oauthflow.core.domain import AvatarUri, Endpoint, EndpointSet, UserInfo
from oauthflow.core.ports import OAuth2Provider, RequestHookArgs
from oauthflow.core.tokens import REFRESH_TOKEN_KEY
from oauthflow.providers.hooks import use_bearer_header
from oauthflow.providers.parsing import load_json, require_text, text


BASE_URI = "https://app.vssps.visualstudio.com"
CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
AVATAR_TEMPLATE = BASE_URI + "/_apis/Profile/Profiles/{id}/Avatar?size={size}&format=png"


def build_assertion_request(args: RequestHookArgs) -> None:
    """Replace the default token request with a JWT-bearer assertion."""
    refresh_token = args.parameters.get(REFRESH_TOKEN_KEY)
    args.request.add_parameters(
        {
            "client_assertion_type": CLIENT_ASSERTION_TYPE,
            "client_assertion": args.configuration.client_secret,
            "grant_type": REFRESH_TOKEN_KEY if refresh_token else JWT_BEARER_GRANT,
            "assertion": refresh_token or args.parameters.require("code"),
            "redirect_uri": args.configuration.redirect_uri,
        }
    )


def parse_user_info(content: str) -> UserInfo:
    data = load_json(content)
    user_id = require_text(data, "id")
    return UserInfo(
        id=user_id,
        first_name=text(data.get("displayName")),
        email=text(data.get("emailAddress")),
        avatar=AvatarUri(
            small=AVATAR_TEMPLATE.format(id=user_id, size="small"),
            normal=AVATAR_TEMPLATE.format(id=user_id, size="medium"),
            large=AVATAR_TEMPLATE.format(id=user_id, size="large"),
        ),
    )


VSTS = OAuth2Provider(
    name="VSTS",
    endpoints=EndpointSet(
        authorize=Endpoint(base_uri=f"{BASE_URI}/oauth2", resource_path="/authorize"),
        token=Endpoint(base_uri=f"{BASE_URI}/oauth2", resource_path="/token"),
        user_info=Endpoint(
            base_uri=BASE_URI, resource_path="/_apis/profile/profiles/me?api-version=1.0"
        ),
    ),
    parse_user_info=parse_user_info,
    before_access_token=build_assertion_request,
    before_user_info=use_bearer_header,
)
