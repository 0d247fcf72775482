"""Email verification: send a one-time code, then check it and mark the address verified."""

from __future__ import annotations

import logging
import re
import secrets

from redis.exceptions import RedisError

from user_service.core.errors import InvalidInputError, UpstreamFailureError, UserServiceError
from user_service.core.metrics import VERIFICATION_CODES_SENT, VERIFICATIONS
from user_service.services.mail import MailDeliveryError, SmtpMailGateway
from user_service.services.redis_store import normalize_email
from user_service.services.verification_codes import VerificationCodeStore

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")

INVALID_EMAIL = "invalid email address"
CODE_MISMATCH = "verification code mismatch"
MAIL_FAILED = "failed to send verification mail"
STORE_FAILED = "verification store unavailable"
MAIL_BODY_TEMPLATE = "Your verification code is {code}"


def validate_email(email: str | None) -> str:
    """Return the normalized address or raise InvalidInputError."""
    normalized = normalize_email(email or "")
    if not EMAIL_PATTERN.match(normalized):
        raise InvalidInputError(INVALID_EMAIL)
    return normalized


def generate_verification_code(length: int = 6) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length))


async def send_verification_code(
    store: VerificationCodeStore,
    mailer: SmtpMailGateway,
    email: str | None,
    subject: str,
    code_length: int = 6,
) -> str:
    """Mail a fresh code to ``email`` and store it with the store's TTL. Returns the code."""
    try:
        address = validate_email(email)
        code = generate_verification_code(code_length)
        try:
            await mailer.send(address, subject, MAIL_BODY_TEMPLATE.format(code=code))
        except MailDeliveryError as e:
            raise UpstreamFailureError(MAIL_FAILED) from e
        try:
            await store.save(address, code)
        except RedisError as e:
            logger.exception("Saving verification code failed: %s", e)
            raise UpstreamFailureError(STORE_FAILED) from e
    except UserServiceError as e:
        VERIFICATION_CODES_SENT.labels(outcome=e.kind.value).inc()
        raise
    VERIFICATION_CODES_SENT.labels(outcome="ok").inc()
    logger.info("Verification code sent to %s", address)
    return code


async def verify_code(store: VerificationCodeStore, email: str | None, code: str | None) -> None:
    """Consume a matching code and record completion atomically. A wrong code leaves the pending one in place."""
    address = normalize_email(email or "")
    candidate = (code or "").strip()
    try:
        if not address or not candidate:
            raise InvalidInputError(CODE_MISMATCH)
        try:
            matched = await store.consume(address, candidate)
        except RedisError as e:
            logger.exception("Verification store failed: %s", e)
            raise UpstreamFailureError(STORE_FAILED) from e
        if not matched:
            logger.info("Verification code mismatch for %s", address)
            raise InvalidInputError(CODE_MISMATCH)
    except UserServiceError as e:
        VERIFICATIONS.labels(outcome=e.kind.value).inc()
        raise
    VERIFICATIONS.labels(outcome="ok").inc()
    logger.info("Email verified: %s", address)
