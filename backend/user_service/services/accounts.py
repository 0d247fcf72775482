"""User and seller accounts: sign-up and password reset (gated on email verification),
password login, and the profile operations behind a valid access token."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date

from redis.exceptions import RedisError
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from user_service.core.auth import TokenPair, TokenProvider, hash_password, verify_password
from user_service.core.errors import InvalidInputError, UnauthorizedError, UpstreamFailureError
from user_service.models.enums import UserType
from user_service.models.seller import Seller
from user_service.models.user import User
from user_service.services.redis_store import normalize_email
from user_service.services.refresh_tokens import RefreshTokenStore
from user_service.services.token_flow import STORE_UNAVAILABLE, issue_tokens
from user_service.services.verification import STORE_FAILED, validate_email
from user_service.services.verification_codes import VerificationCodeStore

logger = logging.getLogger(__name__)

VERIFICATION_REQUIRED = "email verification required"
EMAIL_TAKEN = "email already registered"
PASSWORD_REQUIRED = "password must not be empty"
SELLER_NAME_REQUIRED = "seller name must not be empty"
NICKNAME_REQUIRED = "nickname or birthdate must be given"
BAD_CREDENTIALS = "invalid email or password"
WRONG_PASSWORD = "password does not match"
EMAIL_NOT_OWNED = "email does not match the signed-in account"
ACCOUNT_NOT_FOUND = "account not found"
ACCOUNT_STORE_UNAVAILABLE = "account store unavailable"

Account = User | Seller
MODELS: dict[UserType, type[User] | type[Seller]] = {UserType.USER: User, UserType.SELLER: Seller}


@contextmanager
def _account_store() -> Iterator[None]:
    """Turn database failures into UpstreamFailureError so they reach the client as a 502 envelope."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.exception("Account store failed: %s", e)
        raise UpstreamFailureError(ACCOUNT_STORE_UNAVAILABLE) from e


def account_id(account: Account) -> str:
    return account.seller_id if isinstance(account, Seller) else account.user_id


async def _require_verified(verifications: VerificationCodeStore, email: str) -> None:
    try:
        verified = await verifications.has_completed_verification(email)
    except RedisError as e:
        logger.exception("Verification lookup failed: %s", e)
        raise UpstreamFailureError(STORE_FAILED) from e
    if not verified:
        raise InvalidInputError(VERIFICATION_REQUIRED)


async def _insert_and_commit(session: AsyncSession, account: Account) -> None:
    try:
        session.add(account)
        await session.flush()
        await session.refresh(account)
        await session.commit()
    except IntegrityError as e:
        logger.warning("Join IntegrityError: %s", e)
        raise InvalidInputError(EMAIL_TAKEN) from e


async def _release_marker(verifications: VerificationCodeStore, email: str) -> None:
    """Called only after the commit, so a failed write keeps the address verified."""
    try:
        await verifications.clear_completion(email)
    except RedisError as e:
        # The marker expires on its own; the account change is already committed.
        logger.warning("Clearing verification marker for %s failed: %s", email, e)


async def _revoke_sessions(store: RefreshTokenStore, user_type: UserType, email: str) -> None:
    try:
        await store.delete(user_type, email)
    except RedisError as e:
        logger.exception("Revoking refresh token failed: %s", e)
        raise UpstreamFailureError(STORE_UNAVAILABLE) from e


async def find_account(session: AsyncSession, user_type: UserType, email: str) -> Account | None:
    model = MODELS[user_type]
    with _account_store():
        r = await session.execute(select(model).where(model.email == normalize_email(email)))
        return r.scalar_one_or_none()


async def join_user(
    session: AsyncSession,
    verifications: VerificationCodeStore,
    email: str | None,
    password: str | None,
    nickname: str | None = None,
    birthdate: date | None = None,
) -> User:
    address = validate_email(email)
    if not password:
        raise InvalidInputError(PASSWORD_REQUIRED)
    await _require_verified(verifications, address)
    with _account_store():
        r = await session.execute(select(User.id).where(User.email == address))
        if r.scalar_one_or_none() is not None:
            raise InvalidInputError(EMAIL_TAKEN)
        user = User(
            email=address,
            password_hash=hash_password(password),
            nickname=(nickname or "").strip() or None,
            birthdate=birthdate,
        )
        await _insert_and_commit(session, user)
    await _release_marker(verifications, address)
    logger.info("User joined: %s", user.user_id)
    return user


async def join_seller(
    session: AsyncSession,
    verifications: VerificationCodeStore,
    email: str | None,
    password: str | None,
    seller_name: str | None,
    seller_logo: bytes | None = None,
) -> Seller:
    address = validate_email(email)
    if not password:
        raise InvalidInputError(PASSWORD_REQUIRED)
    name = (seller_name or "").strip()
    if not name:
        raise InvalidInputError(SELLER_NAME_REQUIRED)
    await _require_verified(verifications, address)
    with _account_store():
        r = await session.execute(select(Seller.id).where(Seller.email == address))
        if r.scalar_one_or_none() is not None:
            raise InvalidInputError(EMAIL_TAKEN)
        seller = Seller(
            email=address,
            password_hash=hash_password(password),
            seller_name=name,
            seller_logo=seller_logo or None,
        )
        await _insert_and_commit(session, seller)
    await _release_marker(verifications, address)
    logger.info("Seller joined: %s", seller.seller_id)
    return seller


async def login(
    session: AsyncSession,
    provider: TokenProvider,
    store: RefreshTokenStore,
    email: str | None,
    password: str | None,
    user_type: UserType,
) -> TokenPair:
    """Check credentials for the given account family and issue a fresh token pair."""
    address = normalize_email(email or "")
    if not address or not password:
        raise UnauthorizedError(BAD_CREDENTIALS)
    account = await find_account(session, user_type, address)
    if account is None or not account.password_hash or not verify_password(password, account.password_hash):
        logger.info("Login failed for %s %s", user_type.value, address)
        raise UnauthorizedError(BAD_CREDENTIALS)
    return await issue_tokens(provider, store, address, user_type, account_id(account))


async def update_user(
    session: AsyncSession,
    user: User,
    nickname: str | None = None,
    birthdate: date | None = None,
) -> User:
    name = (nickname or "").strip()
    if not name and birthdate is None:
        raise InvalidInputError(NICKNAME_REQUIRED)
    with _account_store():
        if name:
            user.nickname = name
        if birthdate is not None:
            user.birthdate = birthdate
        await session.flush()
        await session.refresh(user)
    logger.info("User updated: %s", user.user_id)
    return user


async def update_seller(
    session: AsyncSession,
    seller: Seller,
    seller_name: str | None,
    seller_logo: bytes | None = None,
) -> Seller:
    name = (seller_name or "").strip()
    if not name:
        raise InvalidInputError(SELLER_NAME_REQUIRED)
    with _account_store():
        seller.seller_name = name
        if seller_logo:
            seller.seller_logo = seller_logo
        await session.flush()
        await session.refresh(seller)
    logger.info("Seller updated: %s", seller.seller_id)
    return seller


async def change_password(
    session: AsyncSession,
    account: Account,
    old_password: str | None,
    new_password: str | None,
    email: str | None = None,
) -> Account:
    """Replace the password of a signed-in account after re-checking the current one."""
    if email and normalize_email(email) != account.email:
        raise InvalidInputError(EMAIL_NOT_OWNED)
    if not new_password:
        raise InvalidInputError(PASSWORD_REQUIRED)
    if not old_password or not verify_password(old_password, account.password_hash or ""):
        logger.info("Password change rejected for %s", account.email)
        raise UnauthorizedError(WRONG_PASSWORD)
    with _account_store():
        account.password_hash = hash_password(new_password)
        await session.flush()
        await session.refresh(account)
    logger.info("Password changed: %s", account_id(account))
    return account


async def reset_password(
    session: AsyncSession,
    verifications: VerificationCodeStore,
    store: RefreshTokenStore,
    user_type: UserType,
    email: str | None,
    new_password: str | None,
) -> Account:
    """Set a new password for a forgotten one. The address must have just been verified.

    Live refresh tokens are revoked, and the verification marker is spent once the
    new hash is committed.
    """
    address = validate_email(email)
    if not new_password:
        raise InvalidInputError(PASSWORD_REQUIRED)
    await _require_verified(verifications, address)
    account = await find_account(session, user_type, address)
    if account is None:
        raise InvalidInputError(ACCOUNT_NOT_FOUND)
    with _account_store():
        account.password_hash = hash_password(new_password)
        await session.flush()
        await _revoke_sessions(store, user_type, address)
        await session.commit()
    await _release_marker(verifications, address)
    logger.info("Password reset: %s", account_id(account))
    return account


async def delete_account(
    session: AsyncSession,
    store: RefreshTokenStore,
    account: Account,
    password: str | None,
) -> None:
    """Remove a signed-in account after re-checking its password; its refresh token goes too."""
    if not password or not verify_password(password, account.password_hash or ""):
        logger.info("Account deletion rejected for %s", account.email)
        raise UnauthorizedError(WRONG_PASSWORD)
    user_type = UserType.SELLER if isinstance(account, Seller) else UserType.USER
    model = MODELS[user_type]
    with _account_store():
        await session.execute(delete(model).where(model.id == account.id))
        await _revoke_sessions(store, user_type, account.email)
        await session.commit()
    logger.info("Account deleted: %s %s", user_type.value, account_id(account))
