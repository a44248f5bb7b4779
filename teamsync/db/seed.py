"""Role seeding.

Roles are reference data: one row per RoleName. Seeding is an upsert so
existing role ids, and therefore every member's role_id, survive a reseed.
"""

from typing import Iterable, Mapping

from sqlmodel import Session

from teamsync.db.models import Permission, Role, RoleName
from teamsync.logging import get_logger
from teamsync.repositories import RoleRepository

logger = get_logger(__name__)


def seed_roles(
    session: Session,
    role_permissions: Mapping[RoleName, Iterable[Permission]],
) -> list[Role]:
    """Create missing roles and refresh the permission list of existing ones.

    Args:
        session: Database session
        role_permissions: Permission set for every role

    Returns:
        The seeded roles
    """
    roles = RoleRepository(session)
    seeded = []

    for name in RoleName:
        permissions = sorted(p.value for p in role_permissions.get(name, ()))
        role = roles.find_by_name(name)

        if role is None:
            role = roles.insert(
                Role(name=name, permissions=permissions), commit=False
            )
            logger.info("role_created", role=name.value, permissions=len(permissions))
        elif sorted(role.permissions) != permissions:
            roles.update_fields(role.id, commit=False, permissions=permissions)
            logger.info("role_updated", role=name.value, permissions=len(permissions))

        seeded.append(role)

    session.commit()
    for role in seeded:
        session.refresh(role)
    return seeded
