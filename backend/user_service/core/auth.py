"""Password hashing and JWT creation/verification."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from user_service.config import Settings, settings
from user_service.models.enums import UserType

ACCESS = "access"
REFRESH = "refresh"


class TokenDecodeError(Exception):
    """Token is malformed, expired, badly signed or missing a required claim."""


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str

    def as_payload(self) -> dict[str, str]:
        return {"accessToken": self.access_token, "refreshToken": self.refresh_token}


def hash_password(password: str) -> str:
    """Hash password with bcrypt. Bytes truncated to 72 (bcrypt limit); no passlib re-encoding."""
    pwd_bytes = password.encode("utf-8")[:72]
    hashed = bcrypt.hashpw(pwd_bytes, bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify password with bcrypt. Plain password truncated to 72 bytes."""
    plain_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.checkpw(plain_bytes, password_hash.encode("utf-8"))


def _get_jwt_signing_key_and_algorithm(cfg: Settings) -> tuple[str, str]:
    """Return (key, algorithm) for signing tokens."""
    if cfg.use_rs256:
        return cfg.jwt_private_key.strip(), "RS256"
    return cfg.secret_key, cfg.jwt_algorithm


def _get_jwt_verification_key_and_algorithms(cfg: Settings) -> tuple[str, list[str]]:
    """Return (key, algorithms) for verifying tokens."""
    if cfg.use_rs256:
        return cfg.jwt_public_key.strip(), ["RS256"]
    return cfg.secret_key, [cfg.jwt_algorithm]


def _parse_user_type(raw: Any) -> UserType:
    try:
        return UserType(raw)
    except ValueError as e:
        raise TokenDecodeError(f"Unknown user type: {raw!r}") from e


class TokenProvider:
    """Issues access/refresh JWTs and reads claims back out of them.

    Claims: ``sub`` (email), ``userType``, ``userId``, ``type`` (access|refresh),
    ``jti``, ``iat``, ``exp``. Every refresh token carries a fresh ``jti`` so two
    tokens minted in the same second still differ.
    """

    def __init__(
        self,
        signing_key: str,
        verification_key: str,
        algorithm: str,
        access_token_ttl: timedelta,
        refresh_token_ttl: timedelta,
    ) -> None:
        self._signing_key = signing_key
        self._verification_key = verification_key
        self._algorithm = algorithm
        self.access_token_ttl = access_token_ttl
        self.refresh_token_ttl = refresh_token_ttl

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> TokenProvider:
        cfg = cfg or settings
        signing_key, algorithm = _get_jwt_signing_key_and_algorithm(cfg)
        verification_key, _ = _get_jwt_verification_key_and_algorithms(cfg)
        return cls(
            signing_key=signing_key,
            verification_key=verification_key,
            algorithm=algorithm,
            access_token_ttl=timedelta(minutes=cfg.access_token_expire_minutes),
            refresh_token_ttl=timedelta(days=cfg.refresh_token_expire_days),
        )

    def _encode(
        self,
        email: str,
        user_type: UserType,
        user_id: str | None,
        token_type: str,
        ttl: timedelta,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": email,
            "userType": UserType(user_type).value,
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + ttl,
        }
        if user_id is not None:
            payload["userId"] = str(user_id)
        result = jwt.encode(payload, self._signing_key, algorithm=self._algorithm)
        return result if isinstance(result, str) else result.decode("utf-8")

    def create_access_token(self, email: str, user_type: UserType, user_id: str | None = None) -> str:
        return self._encode(email, user_type, user_id, ACCESS, self.access_token_ttl)

    def create_refresh_token(self, email: str, user_type: UserType, user_id: str | None = None) -> str:
        return self._encode(email, user_type, user_id, REFRESH, self.refresh_token_ttl)

    def create_tokens(self, email: str, user_type: UserType, user_id: str | None) -> TokenPair:
        return TokenPair(
            access_token=self.create_access_token(email, user_type, user_id),
            refresh_token=self.create_refresh_token(email, user_type, user_id),
        )

    def decode(self, token: str, expected_type: str | None = None) -> dict[str, Any]:
        """Verify signature and expiry and return the claims. Raises TokenDecodeError."""
        if not token:
            raise TokenDecodeError("Token is empty")
        try:
            claims = jwt.decode(token, self._verification_key, algorithms=[self._algorithm])
        except JWTError as e:
            raise TokenDecodeError(str(e)) from e
        if not claims.get("sub"):
            raise TokenDecodeError("Token has no subject")
        if expected_type is not None and claims.get("type") != expected_type:
            raise TokenDecodeError(f"Expected a {expected_type} token")
        return claims

    def read_refresh_claims(self, token: str) -> tuple[str, UserType, str | None]:
        """Return (email, user_type, user_id) from a refresh token in a single decode."""
        claims = self.decode(token, expected_type=REFRESH)
        return claims["sub"], _parse_user_type(claims.get("userType")), claims.get("userId")

    def get_email_from_token(self, token: str) -> str:
        return self.decode(token)["sub"]

    def get_user_type_from_token(self, token: str) -> UserType:
        return _parse_user_type(self.decode(token).get("userType"))

    def get_user_id_from_token(self, token: str) -> str | None:
        return self.decode(token).get("userId")

    def validate_token(self, token: str) -> bool:
        try:
            self.decode(token)
        except TokenDecodeError:
            return False
        return True
