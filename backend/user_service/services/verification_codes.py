"""Short-lived email verification codes and the completion marker, both in Redis."""

from __future__ import annotations

import hmac

from redis.asyncio import Redis

from user_service.services.redis_store import CompareResult, consume_and_mark, normalize_email

CODE_PREFIX = "verification:code"
COMPLETED_PREFIX = "verification:completed"


def code_key(email: str) -> str:
    return f"{CODE_PREFIX}:{normalize_email(email)}"


def completion_key(email: str) -> str:
    return f"{COMPLETED_PREFIX}:{normalize_email(email)}"


class VerificationCodeStore:
    def __init__(self, client: Redis, code_ttl_seconds: int, completion_ttl_seconds: int) -> None:
        self._client = client
        self._code_ttl_seconds = code_ttl_seconds
        self._completion_ttl_seconds = completion_ttl_seconds

    async def save(self, email: str, code: str) -> None:
        """Store the code, replacing any pending one; Redis expires it after the TTL."""
        await self._client.set(code_key(email), code, ex=self._code_ttl_seconds)

    async def check(self, email: str, code: str) -> bool:
        current = await self._client.get(code_key(email))
        if not current or not code:
            return False
        return hmac.compare_digest(current.encode("utf-8"), code.encode("utf-8"))

    async def consume(self, email: str, code: str) -> bool:
        """Swap a matching pending code for the completion marker in one atomic step.

        True means this caller verified the address. On a mismatch or a Redis error
        nothing changes, so the pending code stays usable.
        """
        if not code:
            return False
        result = await consume_and_mark(
            self._client, code_key(email), code, completion_key(email), self._completion_ttl_seconds
        )
        return result == CompareResult.OK

    async def delete(self, email: str) -> None:
        await self._client.delete(code_key(email))

    async def save_completion(self, email: str) -> None:
        await self._client.set(completion_key(email), "1", ex=self._completion_ttl_seconds)

    async def has_completed_verification(self, email: str) -> bool:
        return bool(await self._client.exists(completion_key(email)))

    async def clear_completion(self, email: str) -> None:
        await self._client.delete(completion_key(email))
