import logging
from enum import Enum
from typing import Iterable, Optional

from django.core.exceptions import PermissionDenied

# Canonical role names
ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"

logger = logging.getLogger(__name__)


class Role(str, Enum):
    CUSTOMER = ROLE_CUSTOMER
    ADMIN = ROLE_ADMIN


def _is_usable(user) -> bool:
    return bool(user is not None and getattr(user, "is_authenticated", False) and getattr(user, "is_active", False))


def is_admin(user) -> bool:
    """Consistent admin check across the codebase."""
    if user is None:
        return False
    return bool(getattr(user, "is_superuser", False) or getattr(user, "role", None) == ROLE_ADMIN)


def role_of(user) -> Role:
    """Resolve the caller's role once, at the request boundary."""
    return Role.ADMIN if is_admin(user) else Role.CUSTOMER


def resolve_customer(user) -> Optional[object]:
    """Return the user when it is an active, authenticated customer; otherwise None."""
    if not _is_usable(user) or is_admin(user):
        return None
    return user


def resolve_admin(user) -> Optional[object]:
    """Return the user when it is an active, authenticated admin; otherwise None."""
    if not _is_usable(user) or not is_admin(user):
        return None
    return user


def has_role(user, role: str) -> bool:
    if role == ROLE_ADMIN:
        return is_admin(user)
    return _is_usable(user) and role_of(user).value == role


def has_any_role(user, roles: Iterable[str]) -> bool:
    return any(has_role(user, r) for r in roles)


def require_role(user, roles: Iterable[str]):
    """Raise PermissionDenied unless the user has one of the roles."""
    roles = [r.value if isinstance(r, Role) else r for r in roles]
    if not has_any_role(user, roles):
        logger.warning(
            "RBAC denial: user_id=%s required=%s",
            getattr(user, "id", None),
            roles,
        )
        raise PermissionDenied("Insufficient role to access this resource.")


def require_ownership(user, owner_id, role: Role = Role.CUSTOMER, allow_admin: bool = False):
    """Raise PermissionDenied unless the user owns the resource.

    Admins pass only when ``allow_admin`` is set and the caller's role is ADMIN.
    """
    if allow_admin and role == Role.ADMIN and is_admin(user):
        return
    if user is None or str(getattr(user, "id", None)) != str(owner_id):
        logger.warning(
            "Ownership denial: user_id=%s owner_id=%s role=%s",
            getattr(user, "id", None),
            owner_id,
            role.value,
        )
        raise PermissionDenied("You do not have access to this resource.")


# Convenience specific guards
def require_admin(user):
    require_role(user, [ROLE_ADMIN])
