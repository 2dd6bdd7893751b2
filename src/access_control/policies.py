"""Hard-coded role transition rules for user administration.

- The super-admin can never be demoted or deleted, by anyone.
- Only the super-admin promotes users to admin or demotes admins.
- Admins cannot delete other admins.
"""

from rest_framework.exceptions import PermissionDenied, ValidationError

from .roles import Role, role_of


def _ensure_not_super_admin(target, action: str) -> None:
    if target.role == Role.SUPER_ADMIN:
        raise PermissionDenied(f"The super-admin account cannot be {action}.")


def ensure_can_promote(actor, target) -> None:
    """Allow ``actor`` to turn ``target`` into an admin, or raise."""
    _ensure_not_super_admin(target, "modified")
    if role_of(actor) != Role.SUPER_ADMIN:
        raise PermissionDenied("Only the super-admin can promote users.")
    if target.role == Role.ADMIN:
        raise ValidationError("User is already an admin.")


def ensure_can_demote(actor, target) -> None:
    """Allow ``actor`` to turn admin ``target`` back into a user, or raise."""
    _ensure_not_super_admin(target, "demoted")
    if role_of(actor) != Role.SUPER_ADMIN:
        raise PermissionDenied("Only the super-admin can demote admins.")
    if target.role != Role.ADMIN:
        raise ValidationError("User is not an admin.")


def ensure_can_delete(actor, target) -> None:
    """Allow ``actor`` to delete ``target``'s account, or raise."""
    _ensure_not_super_admin(target, "deleted")
    actor_role = role_of(actor)
    if actor_role is None or Role(actor_role).rank <= Role(target.role).rank:
        raise PermissionDenied("You are not allowed to delete this account.")


__all__ = ["ensure_can_promote", "ensure_can_demote", "ensure_can_delete"]
