from user_service.models.enums import Role, UserType
from user_service.models.user import User
from user_service.models.seller import Seller

__all__ = [
    "Role",
    "UserType",
    "User",
    "Seller",
]
