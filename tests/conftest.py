"""Shared test helpers: principals and auth overrides."""

import uuid
from contextlib import contextmanager
from typing import Optional

from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser, Role


def make_user(role: Role = Role.BUYER, user_id: Optional[str] = None) -> AuthUser:
    return AuthUser(
        user_id=user_id or f"{role.value}-{uuid.uuid4().hex[:8]}",
        email=f"{role.value}-{uuid.uuid4().hex[:6]}@example.com",
        role=role,
    )


def make_buyer(user_id: Optional[str] = None) -> AuthUser:
    return make_user(Role.BUYER, user_id)


def make_seller(user_id: Optional[str] = None) -> AuthUser:
    return make_user(Role.SELLER, user_id)


def make_admin(user_id: Optional[str] = None) -> AuthUser:
    return make_user(Role.ADMIN, user_id)


@contextmanager
def override_auth(app, user: AuthUser):
    """Run requests against ``app`` as ``user``."""
    previous = app.dependency_overrides.get(get_current_user)
    app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield user
    finally:
        if previous is None:
            app.dependency_overrides.pop(get_current_user, None)
        else:
            app.dependency_overrides[get_current_user] = previous
