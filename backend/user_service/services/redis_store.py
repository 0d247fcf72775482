"""
Shared Redis plumbing for the refresh-token and verification-code stores.
The client is created once in the app lifespan and handed to each store.
"""

from __future__ import annotations

import logging
from enum import IntEnum

from redis.asyncio import Redis, from_url

logger = logging.getLogger(__name__)

# KEYS[1] = record key; ARGV[1] = expected value, ARGV[2] = replacement, ARGV[3] = TTL seconds.
# Returns -1 when the key is absent, 0 when the value differs, 1 when replaced.
COMPARE_AND_SWAP_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if not current then
    return -1
end
if current ~= ARGV[1] then
    return 0
end
redis.call('SET', KEYS[1], ARGV[2], 'EX', tonumber(ARGV[3]))
return 1
"""

# KEYS[1] = record key; ARGV[1] = expected value. Same return codes as above.
COMPARE_AND_DELETE_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if not current then
    return -1
end
if current ~= ARGV[1] then
    return 0
end
redis.call('DEL', KEYS[1])
return 1
"""

# KEYS[1] = code key, KEYS[2] = completion key; ARGV[1] = expected code, ARGV[2] = completion TTL.
# Deletes the code and sets the completion marker in one step. Same return codes as above.
CONSUME_AND_MARK_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if not current then
    return -1
end
if current ~= ARGV[1] then
    return 0
end
redis.call('DEL', KEYS[1])
redis.call('SET', KEYS[2], '1', 'EX', tonumber(ARGV[2]))
return 1
"""


class CompareResult(IntEnum):
    MISSING = -1
    MISMATCH = 0
    OK = 1


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def open_redis(url: str) -> Redis:
    """Return async Redis client (connects lazily on first command)."""
    return from_url(url, encoding="utf-8", decode_responses=True)


async def close_redis(client: Redis | None) -> None:
    """Close Redis connection (e.g. on app shutdown)."""
    if client is None:
        return
    try:
        await client.aclose()
    except Exception as e:
        logger.warning("Error closing Redis: %s", e)


async def compare_and_swap(client: Redis, key: str, expected: str, replacement: str, ttl_seconds: int) -> CompareResult:
    result = await client.eval(COMPARE_AND_SWAP_SCRIPT, 1, key, expected, replacement, ttl_seconds)
    return CompareResult(int(result))


async def compare_and_delete(client: Redis, key: str, expected: str) -> CompareResult:
    result = await client.eval(COMPARE_AND_DELETE_SCRIPT, 1, key, expected)
    return CompareResult(int(result))


async def consume_and_mark(
    client: Redis, key: str, expected: str, marker_key: str, marker_ttl_seconds: int
) -> CompareResult:
    result = await client.eval(CONSUME_AND_MARK_SCRIPT, 2, key, marker_key, expected, marker_ttl_seconds)
    return CompareResult(int(result))
