"""Authentication and authorization for the API."""

from api.auth.jwt import create_access_token, verify_token
from api.auth.permissions import (
    ROLE_LEVELS,
    ROLE_PERMISSIONS,
    can_modify,
    describe_modify_violation,
    get_permissions_for_role,
    get_role_level,
    has_permission,
    role_guard,
)
from api.auth.dependencies import CurrentUser, get_current_user, load_principal

__all__ = [
    # JWT
    "create_access_token",
    "verify_token",
    # Role hierarchy
    "ROLE_LEVELS",
    "ROLE_PERMISSIONS",
    "can_modify",
    "describe_modify_violation",
    "get_permissions_for_role",
    "get_role_level",
    "has_permission",
    "role_guard",
    # Dependencies
    "CurrentUser",
    "get_current_user",
    "load_principal",
]
