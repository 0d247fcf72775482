"""User and seller accounts: sign-up (needs a verified email), profile, password and deletion."""

import base64
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from user_service.api.deps import (
    get_current_seller,
    get_current_user,
    get_refresh_token_store,
    get_verification_store,
)
from user_service.db.session import get_db
from user_service.models.enums import UserType
from user_service.models.seller import Seller
from user_service.models.user import User
from user_service.schemas.auth import (
    PasswordBody,
    PasswordChangeBody,
    PasswordResetBody,
    SellerJoinBody,
    SellerUpdateBody,
    UserJoinBody,
    UserUpdateBody,
)
from user_service.schemas.envelope import ResponseEnvelope
from user_service.services import accounts
from user_service.services.refresh_tokens import RefreshTokenStore
from user_service.services.verification_codes import VerificationCodeStore

router = APIRouter(tags=["accounts"])

JOIN_ERRORS = {400: {"description": "Email unverified, malformed or already registered"}}
SIGNED_IN_ERRORS = {401: {"description": "Missing, invalid or expired access token"}}
PASSWORD_ERRORS = {
    400: {"description": "New password empty or email not owned"},
    401: {"description": "Access token invalid or password does not match"},
}
RESET_ERRORS = {400: {"description": "Email unverified or no such account"}}


def _user_info(user: User) -> dict:
    return {
        "userId": user.user_id,
        "email": user.email,
        "nickname": user.nickname,
        "birthdate": user.birthdate.isoformat() if user.birthdate else None,
        "role": user.role.value,
        "createdAt": user.created_at.isoformat(),
    }


def _seller_info(seller: Seller) -> dict:
    return {
        "sellerId": seller.seller_id,
        "email": seller.email,
        "sellerName": seller.seller_name,
        "sellerLogo": base64.b64encode(seller.seller_logo).decode("ascii") if seller.seller_logo else None,
        "createdAt": seller.created_at.isoformat(),
    }


def _updated(account: accounts.Account) -> ResponseEnvelope:
    key = "sellerId" if isinstance(account, Seller) else "userId"
    return ResponseEnvelope(payload={key: accounts.account_id(account), "updatedAt": account.updated_at.isoformat()})


@router.post(
    "/users/join",
    response_model=ResponseEnvelope,
    summary="Register a user",
    responses=JOIN_ERRORS,
)
async def join_user(
    session: Annotated[AsyncSession, Depends(get_db)],
    verifications: Annotated[VerificationCodeStore, Depends(get_verification_store)],
    body: UserJoinBody,
) -> ResponseEnvelope:
    user = await accounts.join_user(
        session, verifications, body.email, body.password, body.nickname, body.birthdate
    )
    return ResponseEnvelope(payload={"userId": user.user_id, "createdAt": user.created_at.isoformat()})


@router.post(
    "/sellers/join",
    response_model=ResponseEnvelope,
    summary="Register a seller",
    responses=JOIN_ERRORS,
)
async def join_seller(
    session: Annotated[AsyncSession, Depends(get_db)],
    verifications: Annotated[VerificationCodeStore, Depends(get_verification_store)],
    body: SellerJoinBody,
) -> ResponseEnvelope:
    seller = await accounts.join_seller(
        session, verifications, body.email, body.password, body.seller_name, body.seller_logo
    )
    return ResponseEnvelope(payload={"sellerId": seller.seller_id, "createdAt": seller.created_at.isoformat()})


@router.get(
    "/users/me",
    response_model=ResponseEnvelope,
    summary="Signed-in user's profile",
    responses=SIGNED_IN_ERRORS,
)
async def user_info(user: Annotated[User, Depends(get_current_user)]) -> ResponseEnvelope:
    return ResponseEnvelope(payload=_user_info(user))


@router.put(
    "/users/me",
    response_model=ResponseEnvelope,
    summary="Update nickname or birthdate",
    responses=SIGNED_IN_ERRORS,
)
async def update_user(
    session: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
    body: UserUpdateBody,
) -> ResponseEnvelope:
    return _updated(await accounts.update_user(session, user, body.nickname, body.birthdate))


@router.put(
    "/users/me/password",
    response_model=ResponseEnvelope,
    summary="Change password",
    responses=PASSWORD_ERRORS,
)
async def change_user_password(
    session: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
    body: PasswordChangeBody,
) -> ResponseEnvelope:
    account = await accounts.change_password(session, user, body.old_password, body.new_password, body.email)
    return _updated(account)


@router.post(
    "/users/find-password",
    response_model=ResponseEnvelope,
    summary="Reset a forgotten password",
    responses=RESET_ERRORS,
)
async def reset_user_password(
    session: Annotated[AsyncSession, Depends(get_db)],
    verifications: Annotated[VerificationCodeStore, Depends(get_verification_store)],
    store: Annotated[RefreshTokenStore, Depends(get_refresh_token_store)],
    body: PasswordResetBody,
) -> ResponseEnvelope:
    account = await accounts.reset_password(session, verifications, store, UserType.USER, body.email, body.password)
    return _updated(account)


@router.delete(
    "/users/me",
    response_model=ResponseEnvelope,
    summary="Delete the signed-in user",
    responses=SIGNED_IN_ERRORS,
)
async def delete_user(
    session: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[RefreshTokenStore, Depends(get_refresh_token_store)],
    user: Annotated[User, Depends(get_current_user)],
    body: PasswordBody,
) -> ResponseEnvelope:
    await accounts.delete_account(session, store, user, body.password)
    return ResponseEnvelope()


@router.get(
    "/sellers/me",
    response_model=ResponseEnvelope,
    summary="Signed-in seller's profile",
    responses=SIGNED_IN_ERRORS,
)
async def seller_info(seller: Annotated[Seller, Depends(get_current_seller)]) -> ResponseEnvelope:
    return ResponseEnvelope(payload=_seller_info(seller))


@router.put(
    "/sellers/me",
    response_model=ResponseEnvelope,
    summary="Update seller name or logo",
    responses=SIGNED_IN_ERRORS,
)
async def update_seller(
    session: Annotated[AsyncSession, Depends(get_db)],
    seller: Annotated[Seller, Depends(get_current_seller)],
    body: SellerUpdateBody,
) -> ResponseEnvelope:
    return _updated(await accounts.update_seller(session, seller, body.seller_name, body.seller_logo))


@router.put(
    "/sellers/me/password",
    response_model=ResponseEnvelope,
    summary="Change password",
    responses=PASSWORD_ERRORS,
)
async def change_seller_password(
    session: Annotated[AsyncSession, Depends(get_db)],
    seller: Annotated[Seller, Depends(get_current_seller)],
    body: PasswordChangeBody,
) -> ResponseEnvelope:
    account = await accounts.change_password(session, seller, body.old_password, body.new_password, body.email)
    return _updated(account)


@router.post(
    "/sellers/find-password",
    response_model=ResponseEnvelope,
    summary="Reset a forgotten password",
    responses=RESET_ERRORS,
)
async def reset_seller_password(
    session: Annotated[AsyncSession, Depends(get_db)],
    verifications: Annotated[VerificationCodeStore, Depends(get_verification_store)],
    store: Annotated[RefreshTokenStore, Depends(get_refresh_token_store)],
    body: PasswordResetBody,
) -> ResponseEnvelope:
    account = await accounts.reset_password(session, verifications, store, UserType.SELLER, body.email, body.password)
    return _updated(account)


@router.delete(
    "/sellers/me",
    response_model=ResponseEnvelope,
    summary="Delete the signed-in seller",
    responses=SIGNED_IN_ERRORS,
)
async def delete_seller(
    session: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[RefreshTokenStore, Depends(get_refresh_token_store)],
    seller: Annotated[Seller, Depends(get_current_seller)],
    body: PasswordBody,
) -> ResponseEnvelope:
    await accounts.delete_account(session, store, seller, body.password)
    return ResponseEnvelope()
