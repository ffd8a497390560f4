"""Access policy for the REST surface.

Every request resolves its actor once and asks ``can_access`` whether the
actor may touch the resource, instead of comparing roles and owner ids
inside each handler.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..exceptions import AuthenticationError, PermissionDeniedError
from .schemas import Role


class Action(str, Enum):
    """Things a request can do."""

    READ_CATALOG = "read_catalog"
    MANAGE_CATALOG = "manage_catalog"
    BORROW = "borrow"
    MANAGE_LOAN = "manage_loan"  # return / pay fine
    VIEW_LOANS = "view_loans"
    LIST_USERS = "list_users"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller."""

    user_id: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class Resource:
    """What is being accessed, and who owns it (if anyone)."""

    action: Action
    owner_id: Optional[str] = None


_PUBLIC = {Action.READ_CATALOG}
_ADMIN_ONLY = {Action.MANAGE_CATALOG, Action.LIST_USERS}
_OWNER_OR_ADMIN = {Action.MANAGE_LOAN, Action.VIEW_LOANS}


def can_access(actor: Optional[Actor], resource: Resource) -> bool:
    """Decide whether ``actor`` may perform ``resource.action``.

    - Catalog reads are public.
    - Everything else needs an actor; admins may do anything.
    - Catalog management and user listing are admin-only.
    - Loans (and loan listings) belong to their borrower.
    """
    if resource.action in _PUBLIC:
        return True
    if actor is None:
        return False
    if actor.is_admin:
        return True
    if resource.action in _ADMIN_ONLY:
        return False
    if resource.action in _OWNER_OR_ADMIN:
        return resource.owner_id is not None and resource.owner_id == actor.user_id
    return True


def require_access(actor: Optional[Actor], resource: Resource) -> None:
    """Raise unless ``can_access`` allows the request.

    Raises:
        AuthenticationError: No actor and the resource is not public
        PermissionDeniedError: Actor is known but not allowed
    """
    if can_access(actor, resource):
        return
    if actor is None:
        raise AuthenticationError("Authentication required")
    raise PermissionDeniedError("Access denied")
