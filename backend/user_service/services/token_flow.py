"""Refresh and logout: match the presented refresh token against the stored one.

Both flows go through the store's atomic compare primitives, so two concurrent
refreshes with the same token cannot both succeed.
"""

from __future__ import annotations

import logging

from redis.exceptions import RedisError

from user_service.core.auth import TokenDecodeError, TokenPair, TokenProvider
from user_service.core.errors import (
    InvalidInputError,
    UnauthorizedError,
    UpstreamFailureError,
    UserServiceError,
)
from user_service.core.metrics import LOGOUTS, TOKEN_REFRESHES
from user_service.models.enums import UserType
from user_service.services.redis_store import CompareResult
from user_service.services.refresh_tokens import RefreshTokenStore

logger = logging.getLogger(__name__)

EMPTY_REFRESH_TOKEN = "refresh token must not be empty"
UNDECODABLE_REFRESH_TOKEN = "refresh token could not be decoded"
REFRESH_TOKEN_MISSING = "refresh token does not exist"
REFRESH_TOKEN_MISMATCH = "refresh token mismatch"
INVALID_ACCESS_TOKEN = "invalid access token"
STORE_UNAVAILABLE = "token store unavailable"


def _read_claims(provider: TokenProvider, refresh_token: str | None) -> tuple[str, str, UserType, str | None]:
    """Return (token, email, user_type, user_id) or raise InvalidInputError."""
    token = refresh_token or ""
    if not token.strip():
        raise InvalidInputError(EMPTY_REFRESH_TOKEN)
    if token != token.strip():
        # Compared byte for byte with the stored token, so padding is never trimmed away.
        raise InvalidInputError(UNDECODABLE_REFRESH_TOKEN)
    try:
        email, user_type, user_id = provider.read_refresh_claims(token)
    except TokenDecodeError as e:
        logger.warning("Refresh token decode failed: %s", e)
        raise InvalidInputError(UNDECODABLE_REFRESH_TOKEN) from e
    return token, email, user_type, user_id


def _raise_for(result: CompareResult, user_type: UserType, email: str) -> None:
    if result == CompareResult.MISSING:
        logger.info("No stored refresh token for %s %s", user_type.value, email)
        raise UnauthorizedError(REFRESH_TOKEN_MISSING)
    if result == CompareResult.MISMATCH:
        logger.warning("Refresh token mismatch for %s %s", user_type.value, email)
        raise UnauthorizedError(REFRESH_TOKEN_MISMATCH)


async def issue_tokens(
    provider: TokenProvider,
    store: RefreshTokenStore,
    email: str,
    user_type: UserType,
    user_id: str,
) -> TokenPair:
    """Mint a token pair and make its refresh token the only live one for (user_type, email)."""
    pair = provider.create_tokens(email, user_type, user_id)
    try:
        await store.save(user_type, email, pair.refresh_token)
    except RedisError as e:
        logger.exception("Saving refresh token failed: %s", e)
        raise UpstreamFailureError(STORE_UNAVAILABLE) from e
    return pair


async def refresh(provider: TokenProvider, store: RefreshTokenStore, refresh_token: str | None) -> TokenPair:
    """Exchange a refresh token for a new access token and a rotated refresh token."""
    try:
        token, email, user_type, user_id = _read_claims(provider, refresh_token)
        pair = provider.create_tokens(email, user_type, user_id)
        try:
            result = await store.compare_and_swap(user_type, email, token, pair.refresh_token)
        except RedisError as e:
            logger.exception("Refresh token lookup failed: %s", e)
            raise UpstreamFailureError(STORE_UNAVAILABLE) from e
        _raise_for(result, user_type, email)
    except UserServiceError as e:
        TOKEN_REFRESHES.labels(outcome=e.kind.value).inc()
        raise
    TOKEN_REFRESHES.labels(outcome="ok").inc()
    return pair


async def logout(
    provider: TokenProvider,
    store: RefreshTokenStore,
    refresh_token: str | None,
    access_token: str | None = None,
) -> None:
    """Revoke the stored refresh token. A bearer access token, when sent, must be valid."""
    try:
        if access_token is not None and not provider.validate_token(access_token):
            raise UnauthorizedError(INVALID_ACCESS_TOKEN)
        token, email, user_type, _ = _read_claims(provider, refresh_token)
        try:
            result = await store.compare_and_delete(user_type, email, token)
        except RedisError as e:
            logger.exception("Refresh token delete failed: %s", e)
            raise UpstreamFailureError(STORE_UNAVAILABLE) from e
        _raise_for(result, user_type, email)
    except UserServiceError as e:
        LOGOUTS.labels(outcome=e.kind.value).inc()
        raise
    LOGOUTS.labels(outcome="ok").inc()
    logger.info("Logged out %s %s", user_type.value, email)
