"""Workspace role hierarchy and role-to-permission mappings.

Roles are ordered OWNER > CO_OWNER > ADMIN > MEMBER. The hierarchy decides
who may act on whom; the permission sets decide which actions a role may
take at all.
"""

from typing import FrozenSet, Iterable, Optional, Union

from api.exceptions import AuthorizationError
from teamsync.db.models import Permission, RoleName

RoleLike = Union[RoleName, str, None]

ROLE_LEVELS: dict[RoleName, int] = {
    RoleName.OWNER: 4,
    RoleName.CO_OWNER: 3,
    RoleName.ADMIN: 2,
    RoleName.MEMBER: 1,
}


_OWNER_PERMISSIONS: FrozenSet[Permission] = frozenset(Permission)

_CO_OWNER_PERMISSIONS: FrozenSet[Permission] = _OWNER_PERMISSIONS - {
    # Only the owner may delete the workspace
    Permission.DELETE_WORKSPACE,
}

_ADMIN_PERMISSIONS: FrozenSet[Permission] = frozenset(
    [
        Permission.ADD_MEMBER,
        Permission.MANAGE_WORKSPACE_SETTINGS,
        Permission.CREATE_PROJECT,
        Permission.EDIT_PROJECT,
        Permission.DELETE_PROJECT,
        Permission.CREATE_TASK,
        Permission.EDIT_TASK,
        Permission.DELETE_TASK,
        Permission.VIEW_ONLY,
    ]
)

_MEMBER_PERMISSIONS: FrozenSet[Permission] = frozenset(
    [
        Permission.CREATE_TASK,
        Permission.EDIT_TASK,
        Permission.VIEW_ONLY,
    ]
)


ROLE_PERMISSIONS: dict[RoleName, FrozenSet[Permission]] = {
    RoleName.OWNER: _OWNER_PERMISSIONS,
    RoleName.CO_OWNER: _CO_OWNER_PERMISSIONS,
    RoleName.ADMIN: _ADMIN_PERMISSIONS,
    RoleName.MEMBER: _MEMBER_PERMISSIONS,
}


def _as_role(role: RoleLike) -> Optional[RoleName]:
    if isinstance(role, RoleName):
        return role
    try:
        return RoleName(role)
    except ValueError:
        return None


def get_role_level(role: RoleLike) -> int:
    """Hierarchy level of a role; 0 for anything unrecognised."""
    name = _as_role(role)
    return ROLE_LEVELS[name] if name else 0


def can_modify(requesting_role: RoleLike, target_role: RoleLike) -> bool:
    """Whether a holder of requesting_role may act on a holder of target_role.

    The owner may act on anyone. Otherwise a role only acts on strictly
    lower roles, so equal roles never act on each other and MEMBER acts on
    nobody.
    """
    requester = get_role_level(requesting_role)
    target = get_role_level(target_role)

    if requester == 0:
        return False
    if requester == ROLE_LEVELS[RoleName.OWNER]:
        return True
    if requester == ROLE_LEVELS[RoleName.MEMBER]:
        return False
    return requester > target


def describe_modify_violation(
    requesting_role: RoleLike, target_role: RoleLike
) -> str:
    """Human-readable reason a can_modify check failed."""
    requester = _as_role(requesting_role)
    target = _as_role(target_role)

    if requester is None:
        return f"Invalid role: {requesting_role}"
    if requester == RoleName.MEMBER:
        return "Members cannot modify other members"
    if requester == target:
        return f"{requester.value} cannot modify another {requester.value}"
    target_label = target.value if target else str(target_role)
    return f"{requester.value} cannot modify a higher role ({target_label})"


def get_permissions_for_role(role: RoleLike) -> FrozenSet[Permission]:
    """All permissions granted to a role."""
    name = _as_role(role)
    return ROLE_PERMISSIONS.get(name, frozenset()) if name else frozenset()


def has_permission(role: RoleLike, permission: Permission) -> bool:
    return permission in get_permissions_for_role(role)


def role_guard(role: RoleLike, required_permissions: Iterable[Permission]) -> None:
    """Raise AuthorizationError unless the role holds every required permission.

    Raises:
        AuthorizationError: No role, unknown role, or missing permissions
    """
    if not role:
        raise AuthorizationError("No role specified")

    name = _as_role(role)
    if name is None:
        raise AuthorizationError(f"Invalid role: {role}")

    granted = ROLE_PERMISSIONS[name]
    missing = [p.value for p in required_permissions if p not in granted]
    if missing:
        raise AuthorizationError(
            f"Role {name.value} is missing required permissions: {', '.join(missing)}",
            details={"missingPermissions": missing},
        )
