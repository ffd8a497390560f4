"""Users module: borrowers, admins and the access policy."""

from .manager import UserManager
from .models import User
from .policy import Action, Actor, Resource, can_access, require_access
from .schemas import Role, UserCreate, UserResponse

__all__ = [
    "UserManager",
    "User",
    "Action",
    "Actor",
    "Resource",
    "can_access",
    "require_access",
    "Role",
    "UserCreate",
    "UserResponse",
]
