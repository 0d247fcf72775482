"""Auth: login, refresh, logout."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from user_service.api.deps import bearer_token, get_refresh_token_store, get_token_provider
from user_service.core.auth import TokenProvider
from user_service.db.session import get_db
from user_service.schemas.auth import LoginBody, RefreshTokenBody
from user_service.schemas.envelope import ResponseEnvelope
from user_service.services import accounts, token_flow
from user_service.services.refresh_tokens import RefreshTokenStore

router = APIRouter(tags=["auth"])


@router.post(
    "/login",
    response_model=ResponseEnvelope,
    summary="Login with email and password",
    responses={401: {"description": "Invalid email or password"}},
)
async def login(
    session: Annotated[AsyncSession, Depends(get_db)],
    provider: Annotated[TokenProvider, Depends(get_token_provider)],
    store: Annotated[RefreshTokenStore, Depends(get_refresh_token_store)],
    body: LoginBody,
) -> ResponseEnvelope:
    pair = await accounts.login(session, provider, store, body.email, body.password, body.user_type)
    return ResponseEnvelope(payload=pair.as_payload())


@router.post(
    "/refresh",
    response_model=ResponseEnvelope,
    summary="Exchange refresh token for new access and refresh tokens",
    responses={
        400: {"description": "Refresh token empty or not decodable"},
        401: {"description": "Refresh token revoked or superseded"},
    },
)
async def refresh_tokens(
    provider: Annotated[TokenProvider, Depends(get_token_provider)],
    store: Annotated[RefreshTokenStore, Depends(get_refresh_token_store)],
    body: RefreshTokenBody,
) -> ResponseEnvelope:
    """Exchange refreshToken for a new accessToken and refreshToken (rotation)."""
    pair = await token_flow.refresh(provider, store, body.refresh_token)
    return ResponseEnvelope(payload=pair.as_payload())


@router.post(
    "/logout",
    response_model=ResponseEnvelope,
    summary="Revoke the refresh token",
    responses={
        400: {"description": "Refresh token empty or not decodable"},
        401: {"description": "Invalid bearer token, or refresh token revoked or superseded"},
    },
)
async def logout(
    provider: Annotated[TokenProvider, Depends(get_token_provider)],
    store: Annotated[RefreshTokenStore, Depends(get_refresh_token_store)],
    body: RefreshTokenBody,
    authorization: Annotated[str | None, Header()] = None,
) -> ResponseEnvelope:
    await token_flow.logout(provider, store, body.refresh_token, bearer_token(authorization))
    return ResponseEnvelope()
