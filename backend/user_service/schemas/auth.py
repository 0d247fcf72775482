"""Request bodies for token, mail verification and account endpoints (camelCase JSON)."""

from datetime import date

from pydantic import Base64Bytes, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from user_service.models.enums import UserType


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RefreshTokenBody(CamelModel):
    refresh_token: str | None = None


class EmailBody(CamelModel):
    email: str | None = None


class VerifyCodeBody(CamelModel):
    email: str | None = None
    verification_code: str | None = None


class LoginBody(CamelModel):
    email: str | None = None
    password: str | None = None
    user_type: UserType = UserType.USER


class UserJoinBody(CamelModel):
    email: str | None = None
    password: str | None = None
    nickname: str | None = None
    birthdate: date | None = None


class SellerJoinBody(CamelModel):
    email: str | None = None
    password: str | None = None
    seller_name: str | None = None
    # base64 image bytes
    seller_logo: Base64Bytes | None = None


class UserUpdateBody(CamelModel):
    nickname: str | None = None
    birthdate: date | None = None


class SellerUpdateBody(CamelModel):
    seller_name: str | None = None
    seller_logo: Base64Bytes | None = None


class PasswordChangeBody(CamelModel):
    email: str | None = None
    old_password: str | None = None
    new_password: str | None = None


class PasswordResetBody(CamelModel):
    """Forgotten password: the new one, for an address verified just before."""

    email: str | None = None
    password: str | None = None


class PasswordBody(CamelModel):
    password: str | None = None
