"""Test database helpers.

Every test gets its own in-memory SQLite database with all tables created
and the roles seeded.
"""

from types import SimpleNamespace
from typing import Optional
from uuid import UUID

from sqlmodel import Session, SQLModel, create_engine

from api.auth.jwt import create_access_token
from api.auth.permissions import ROLE_PERMISSIONS
from teamsync.db import models  # noqa: F401
from teamsync.db.engine import engine_options
from teamsync.db.models import Member, RoleName, User
from teamsync.db.seed import seed_roles
from teamsync.repositories import RoleRepository

MEMORY_URL = "sqlite:///:memory:"


def create_test_engine():
    """Create an in-memory SQLite engine with every table and seeded roles."""
    test_engine = create_engine(MEMORY_URL, **engine_options(MEMORY_URL))
    SQLModel.metadata.create_all(test_engine)
    with Session(test_engine) as session:
        seed_roles(session, ROLE_PERMISSIONS)
    return test_engine


def create_user(engine, name: str, email: Optional[str] = None) -> User:
    """Insert a user and return it detached from its session."""
    with Session(engine) as session:
        user = User(name=name, email=email or f"{name.lower().replace(' ', '.')}@example.com")
        session.add(user)
        session.commit()
        session.refresh(user)
        session.expunge(user)
        return user


def add_member(engine, workspace_id: UUID, user_id: UUID, role: RoleName) -> Member:
    """Insert a membership with the given role, bypassing the services."""
    with Session(engine) as session:
        role_row = RoleRepository(session).find_by_name(role)
        member = Member(workspace_id=workspace_id, user_id=user_id, role_id=role_row.id)
        session.add(member)
        session.commit()
        session.refresh(member)
        session.expunge(member)
        return member


def role_of(engine, workspace_id: UUID, user_id: UUID) -> Optional[RoleName]:
    """Current role of a user in a workspace, or None if not a member."""
    from teamsync.repositories import MemberRepository

    with Session(engine) as session:
        found = MemberRepository(session).find_with_role(workspace_id, user_id)
        return found[1].name if found else None


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


def build_team(engine) -> SimpleNamespace:
    """A workspace with one user per role plus an outsider.

    Returns a namespace with engine, workspace, owner, co_owner, admin,
    member, second_admin and outsider.
    """
    from api.services import WorkspaceService

    owner = create_user(engine, "Olivia Owner")
    workspace = WorkspaceService(engine).create_workspace(owner.id, "Launch Team")

    team = SimpleNamespace(engine=engine, workspace=workspace, owner=owner)
    for attr, name, role in [
        ("co_owner", "Casey Coowner", RoleName.CO_OWNER),
        ("admin", "Avery Admin", RoleName.ADMIN),
        ("second_admin", "Alex Admin", RoleName.ADMIN),
        ("member", "Morgan Member", RoleName.MEMBER),
    ]:
        user = create_user(engine, name)
        add_member(engine, workspace.id, user.id, role)
        setattr(team, attr, user)

    team.outsider = create_user(engine, "Riley Outsider")
    return team
