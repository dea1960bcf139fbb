"""Request hooks shared by several providers."""

from oauthflow.core.ports import RequestHookArgs
from oauthflow.infrastructure.authenticators import BearerHeaderAuthenticator


def use_bearer_header(args: RequestHookArgs) -> None:
    """Send the access token as ``Authorization: Bearer <token>``."""
    args.client.authenticator = BearerHeaderAuthenticator(args.token.access_token)
