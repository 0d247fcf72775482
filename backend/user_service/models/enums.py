from enum import Enum


class UserType(str, Enum):
    """Account family a token was issued for; part of the refresh-token key."""

    USER = "USER"
    SELLER = "SELLER"


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"
