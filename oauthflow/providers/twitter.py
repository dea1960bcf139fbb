"""Twitter OAuth1 provider."""

from oauthflow.core.domain import AvatarUri, Endpoint, EndpointSet, UserInfo
from oauthflow.core.ports import OAuth1Provider, RequestHookArgs
from oauthflow.providers.parsing import load_json, require_text, split_name, text


BASE_URI = "https://api.twitter.com"


def request_email(args: RequestHookArgs) -> None:
    args.request.add_parameter("include_email", "true")


def _sized(image_url: str | None, suffix: str) -> str | None:
    # Profile image URLs end in _normal; other sizes swap the suffix
    if not image_url:
        return None
    return image_url.replace("_normal.", f"{suffix}.")


def parse_user_info(content: str) -> UserInfo:
    data = load_json(content)
    first_name, last_name = split_name(text(data.get("name")))
    image_url = text(data.get("profile_image_url_https")) or text(data.get("profile_image_url"))
    return UserInfo(
        id=require_text(data, "id_str") if "id_str" in data else require_text(data, "id"),
        first_name=first_name,
        last_name=last_name,
        email=text(data.get("email")),
        avatar=AvatarUri(
            small=_sized(image_url, "_mini"),
            normal=image_url,
            large=_sized(image_url, "_bigger"),
        ),
    )


TWITTER = OAuth1Provider(
    name="Twitter",
    endpoints=EndpointSet(
        request_token=Endpoint(base_uri=BASE_URI, resource_path="/oauth/request_token"),
        authorize=Endpoint(base_uri=BASE_URI, resource_path="/oauth/authenticate"),
        token=Endpoint(base_uri=BASE_URI, resource_path="/oauth/access_token"),
        user_info=Endpoint(
            base_uri=BASE_URI, resource_path="/1.1/account/verify_credentials.json"
        ),
    ),
    parse_user_info=parse_user_info,
    before_user_info=request_email,
)
