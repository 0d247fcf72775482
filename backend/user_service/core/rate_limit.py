"""Per-client request limits (slowapi). Verification mail gets a tighter cap than the default."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from user_service.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200/minute"],
    enabled=settings.rate_limit_enabled,
)
