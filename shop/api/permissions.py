"""
Resolve the calling principal from the Django session.
"""
from __future__ import annotations

from shop.domain.errors import UnauthenticatedError, UnauthorizedError
from shop.domain.principal import Principal, Role


def get_principal(request) -> Principal | None:
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        return None
    role = Role.ADMIN if user.is_staff else Role.USER
    return Principal(user_id=user.pk, role=role)


def require_user(info) -> Principal:
    principal = get_principal(info.context["request"])
    if principal is None:
        raise UnauthenticatedError()
    return principal


def require_admin(info) -> Principal:
    principal = require_user(info)
    if not principal.is_admin:
        raise UnauthorizedError("Admin access required")
    return principal
