"""System checks for role-gated views."""

from django.core.checks import Error, register

from access_control.roles import Role


@register()
def role_maps_use_known_roles(app_configs, **kwargs):
    """Ensure every role named in a view's ``action_roles`` map exists.

    Only the viewsets listed here are inspected; new role-gated viewsets
    should be added to the list.
    """
    errors: list[Error] = []

    # Import here to avoid circular imports at module load time.
    from categories.views import CategoryViewSet
    from stories.views import StoryViewSet

    for view_cls in (StoryViewSet, CategoryViewSet):
        action_roles = getattr(view_cls, "action_roles", None)
        if action_roles is None:
            errors.append(
                Error(
                    f"{view_cls.__name__} does not define action_roles.",
                    obj=view_cls,
                    id="access_control.E001",
                )
            )
            continue
        for action, roles in action_roles.items():
            unknown = [role for role in roles if role not in Role.values]
            if unknown:
                errors.append(
                    Error(
                        f"{view_cls.__name__}.{action} references unknown roles {unknown}.",
                        obj=view_cls,
                        id="access_control.E002",
                    )
                )

    return errors
