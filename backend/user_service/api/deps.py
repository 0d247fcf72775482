"""FastAPI dependencies: collaborators built in the app lifespan and kept on app.state,
plus the signed-in user or seller from the access token."""

from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from user_service.core.auth import ACCESS, TokenDecodeError, TokenProvider
from user_service.core.errors import UnauthorizedError
from user_service.db.session import get_db
from user_service.models.enums import UserType
from user_service.models.seller import Seller
from user_service.models.user import User
from user_service.services import accounts
from user_service.services.mail import SmtpMailGateway
from user_service.services.refresh_tokens import RefreshTokenStore
from user_service.services.verification_codes import VerificationCodeStore

NOT_AUTHENTICATED = "not authenticated"
INVALID_ACCESS_TOKEN = "invalid or expired access token"


def get_token_provider(request: Request) -> TokenProvider:
    return request.app.state.token_provider


def get_refresh_token_store(request: Request) -> RefreshTokenStore:
    return request.app.state.refresh_token_store


def get_verification_store(request: Request) -> VerificationCodeStore:
    return request.app.state.verification_store


def get_mail_gateway(request: Request) -> SmtpMailGateway:
    return request.app.state.mail_gateway


def bearer_token(authorization: str | None) -> str | None:
    """Strip the ``Bearer`` scheme; None when no header was sent."""
    if authorization is None:
        return None
    value = authorization.strip()
    if value[:7].lower() == "bearer ":
        return value[7:].strip()
    return value


async def _current_account(
    session: AsyncSession,
    provider: TokenProvider,
    authorization: str | None,
    user_type: UserType,
) -> accounts.Account:
    token = bearer_token(authorization)
    if not token:
        raise UnauthorizedError(NOT_AUTHENTICATED)
    try:
        claims = provider.decode(token, expected_type=ACCESS)
    except TokenDecodeError:
        raise UnauthorizedError(INVALID_ACCESS_TOKEN)
    if claims.get("userType") != user_type.value:
        raise UnauthorizedError(INVALID_ACCESS_TOKEN)
    account = await accounts.find_account(session, user_type, claims["sub"])
    token_id = claims.get("userId")
    if account is None or (token_id and token_id != accounts.account_id(account)):
        raise UnauthorizedError(accounts.ACCOUNT_NOT_FOUND)
    return account


async def get_current_user(
    session: Annotated[AsyncSession, Depends(get_db)],
    provider: Annotated[TokenProvider, Depends(get_token_provider)],
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    return await _current_account(session, provider, authorization, UserType.USER)


async def get_current_seller(
    session: Annotated[AsyncSession, Depends(get_db)],
    provider: Annotated[TokenProvider, Depends(get_token_provider)],
    authorization: Annotated[str | None, Header()] = None,
) -> Seller:
    return await _current_account(session, provider, authorization, UserType.SELLER)
