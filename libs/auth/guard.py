"""Role and ownership checks.

Pure functions over an ``AuthUser`` and the ids that own a resource. They
never touch the database and always run before any mutation.

Cross-tenant access is reported as ``NotFound`` so a principal cannot learn
about the existence of other tenants' records. A principal who can see a
resource but lacks the right to change it gets ``AuthorizationDenied``.
"""

from typing import Iterable, Optional

from libs.auth.models import AuthUser, Role
from libs.common.errors import AuthorizationDenied, NotFound

BUYER_ROLES = frozenset({Role.BUYER, Role.CUSTOMER})


def is_admin(user: AuthUser) -> bool:
    return user.role == Role.ADMIN


def is_seller(user: AuthUser) -> bool:
    return user.role == Role.SELLER


def is_buyer(user: AuthUser) -> bool:
    return user.role in BUYER_ROLES


def ensure_role(user: AuthUser, *roles: Role) -> None:
    """Reject principals whose role class is not listed."""
    allowed = set(roles)
    if Role.BUYER in allowed or Role.CUSTOMER in allowed:
        allowed |= BUYER_ROLES
    if user.role not in allowed:
        raise AuthorizationDenied(
            f"Role '{user.role.value}' may not perform this action"
        )


def can_see(
    user: AuthUser,
    *,
    owner_ids: Iterable[Optional[str]] = (),
    seller_ids: Iterable[Optional[str]] = (),
) -> bool:
    """True when the principal belongs to the resource's tenant."""
    if is_admin(user):
        return True
    if is_seller(user):
        return user.user_id in set(seller_ids)
    return user.user_id in set(owner_ids)


def ensure_visible(
    user: AuthUser,
    *,
    label: str,
    owner_ids: Iterable[Optional[str]] = (),
    seller_ids: Iterable[Optional[str]] = (),
) -> None:
    """Raise ``NotFound`` unless the principal may read the resource."""
    if not can_see(user, owner_ids=owner_ids, seller_ids=seller_ids):
        raise NotFound(f"{label} not found")


def ensure_owner(user: AuthUser, owner_id: Optional[str], *, action: str) -> None:
    """Admins pass; otherwise only the owning principal may ``action``."""
    if is_admin(user):
        return
    if owner_id is None or user.user_id != owner_id:
        raise AuthorizationDenied(f"Only the owner may {action}")


def ensure_assigned_seller(
    user: AuthUser, seller_ids: Iterable[Optional[str]], *, action: str
) -> None:
    """Admins pass; otherwise only one of the assigned sellers may ``action``."""
    if is_admin(user):
        return
    if not is_seller(user) or user.user_id not in set(seller_ids):
        raise AuthorizationDenied(f"Only the assigned seller or an admin may {action}")
