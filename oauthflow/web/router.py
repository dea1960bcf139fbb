"""
OAuth login and callback endpoints.

- GET /oauth/{provider}/login - Start the flow, redirect to the provider
- GET /oauth/{provider}/callback - Complete the flow, return the user profile

Engine failures propagate to the exception handlers registered in
oauthflow.main.
"""

import logging

from authlib.common.security import generate_token
from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from oauthflow.core.authorization_code import AsyncAuthorizationCodeEngine
from oauthflow.core.domain import UserInfo
from oauthflow.core.tokens import OAUTH_TOKEN_KEY
from oauthflow.providers.registry import create_async_engine
from oauthflow.web.dependencies import Pending, Settings, Transport, ValidProvider


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/oauth", tags=["oauth"])

STATE_LENGTH = 32


@router.get("/{provider}/login")
async def login(
    provider: ValidProvider,
    settings: Settings,
    flows: Pending,
    transport: Transport,
):
    """
    Start the authorization flow.

    OAuth2 flows are keyed by a fresh state value; OAuth1 flows by the
    request token obtained while building the login URI.

    Returns:
        302 redirect to the provider's authorization page
    """
    engine = create_async_engine(provider, settings.get_provider_config(provider), transport)

    if isinstance(engine, AsyncAuthorizationCodeEngine):
        key = generate_token(STATE_LENGTH)
        login_uri = engine.build_login_uri(state=key)
    else:
        login_uri = await engine.build_login_uri()
        key = engine.request_token.access_token

    flows.add(key, engine)
    logger.info(f"Starting OAuth flow for provider: {provider}", extra={"provider": provider})
    return RedirectResponse(login_uri, status_code=status.HTTP_302_FOUND)


@router.get("/{provider}/callback", response_model=UserInfo)
async def callback(provider: ValidProvider, request: Request, flows: Pending):
    """
    Handle the provider's redirect back to the application.

    Raises:
        HTTPException: 400 if the callback matches no pending flow
    """
    params = request.query_params
    engine = flows.pop(
        params.get("state") or params.get(OAUTH_TOKEN_KEY),
        accept=lambda pending: pending.name.lower() == provider,
    )
    if engine is None:
        logger.warning(
            f"OAuth callback for {provider} matches no pending flow",
            extra={"provider": provider},
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unknown or expired authorization flow",
        )

    if isinstance(engine, AsyncAuthorizationCodeEngine):
        user_info = await engine.exchange_code_for_token(params)
    else:
        user_info = await engine.exchange_verifier_for_user_info(params)

    logger.info(
        f"OAuth flow completed for provider: {provider}",
        extra={"provider": provider, "user_id": user_info.id},
    )
    return user_info
