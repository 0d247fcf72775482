"""Refresh token storage for JWT rotation: one live token per (user type, email)."""

from __future__ import annotations

from redis.asyncio import Redis

from user_service.models.enums import UserType
from user_service.services.redis_store import (
    CompareResult,
    compare_and_delete,
    compare_and_swap,
    normalize_email,
)

KEY_PREFIX = "refresh_token"


def refresh_token_key(user_type: UserType, email: str) -> str:
    return f"{KEY_PREFIX}:{UserType(user_type).value}:{normalize_email(email)}"


class RefreshTokenStore:
    """Redis-backed map of (user type, email) -> last issued refresh token.

    Records expire with the refresh token itself. Saving overwrites, so a new
    login for the same user type ends the previous session.
    """

    def __init__(self, client: Redis, ttl_seconds: int) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds

    async def find(self, user_type: UserType, email: str) -> str | None:
        return await self._client.get(refresh_token_key(user_type, email))

    async def save(self, user_type: UserType, email: str, token: str) -> None:
        await self._client.set(refresh_token_key(user_type, email), token, ex=self._ttl_seconds)

    async def delete(self, user_type: UserType, email: str) -> None:
        await self._client.delete(refresh_token_key(user_type, email))

    async def compare_and_swap(
        self, user_type: UserType, email: str, expected: str, replacement: str
    ) -> CompareResult:
        """Replace the stored token only if it still equals ``expected``."""
        return await compare_and_swap(
            self._client, refresh_token_key(user_type, email), expected, replacement, self._ttl_seconds
        )

    async def compare_and_delete(self, user_type: UserType, email: str, expected: str) -> CompareResult:
        """Delete the stored token only if it still equals ``expected``."""
        return await compare_and_delete(self._client, refresh_token_key(user_type, email), expected)
