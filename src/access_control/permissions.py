"""Role allow-list permission classes for DRF views."""

from rest_framework import permissions

from .roles import Role, role_of


class RolePermission(permissions.BasePermission):
    """Grant access when the caller's role is in ``allowed_roles``.

    The super-admin bypasses every check. Anonymous callers are rejected
    before the role is looked at, which DRF turns into a 401.
    """

    allowed_roles: tuple[str, ...] = ()

    def has_permission(self, request, view) -> bool:
        role = role_of(getattr(request, "user", None))
        if role is None:
            return False
        if role == Role.SUPER_ADMIN:
            return True
        if role in self.allowed_roles:
            return True
        self.message = f"User role '{role}' is not authorized to access this route"
        return False


def allow_roles(*roles: str) -> type[RolePermission]:
    """Build a permission class allowing ``roles`` (plus the super-admin bypass)."""
    for role in roles:
        if role not in Role.values:
            raise ValueError(f"Unknown role: {role}")
    name = "Allow_" + "_".join(r.replace("-", "_") for r in roles) if roles else "AllowSuperAdminOnly"
    return type(name, (RolePermission,), {"allowed_roles": tuple(roles)})


class IsAuthenticatedUser(permissions.BasePermission):
    """Any signed-in account, regardless of role."""

    def has_permission(self, request, view) -> bool:
        return role_of(getattr(request, "user", None)) is not None


__all__ = ["RolePermission", "allow_roles", "IsAuthenticatedUser"]
