"""Tests for ownership transfer, its verification and compensation."""

import pytest
from sqlmodel import Session

from api.exceptions import (
    BadRequestError,
    InsufficientRoleError,
    NotFoundError,
    TransferVerificationError,
)
from api.services import MemberService
from api.services.member_service import ELIGIBLE_NEW_OWNER_ROLES
from teamsync.db.models import RoleName, Workspace
from teamsync.repositories import MemberRepository, RoleRepository, WorkspaceRepository
from tests.db_utils import role_of


@pytest.fixture
def service(engine):
    return MemberService(engine)


def _owner_id(engine, workspace_id):
    with Session(engine) as session:
        return session.get(Workspace, workspace_id).owner_id


def _owner_count(engine, workspace_id):
    with Session(engine) as session:
        owner_role = RoleRepository(session).find_by_name(RoleName.OWNER)
        return MemberRepository(session).count_with_role(workspace_id, owner_role.id)


def _assert_unchanged(team):
    assert _owner_id(team.engine, team.workspace.id) == team.owner.id
    assert role_of(team.engine, team.workspace.id, team.owner.id) == RoleName.OWNER
    assert role_of(team.engine, team.workspace.id, team.admin.id) == RoleName.ADMIN
    assert _owner_count(team.engine, team.workspace.id) == 1


class TestTransferOwnership:
    def test_transfer_to_admin(self, service, team):
        result = service.transfer_ownership(team.workspace.id, team.admin.id, team.owner.id)

        assert result.workspace.owner_id == team.admin.id
        new_member, new_role = result.new_owner
        old_member, old_role = result.previous_owner
        assert (new_member.user_id, new_role.name) == (team.admin.id, RoleName.OWNER)
        assert (old_member.user_id, old_role.name) == (team.owner.id, RoleName.MEMBER)

        assert _owner_id(team.engine, team.workspace.id) == team.admin.id
        assert role_of(team.engine, team.workspace.id, team.admin.id) == RoleName.OWNER
        assert role_of(team.engine, team.workspace.id, team.owner.id) == RoleName.MEMBER
        assert _owner_count(team.engine, team.workspace.id) == 1

    def test_transfer_to_co_owner(self, service, team):
        service.transfer_ownership(team.workspace.id, team.co_owner.id, team.owner.id)
        assert _owner_id(team.engine, team.workspace.id) == team.co_owner.id
        assert _owner_count(team.engine, team.workspace.id) == 1

    def test_previous_owner_may_leave_afterwards(self, service, team):
        service.transfer_ownership(team.workspace.id, team.admin.id, team.owner.id)
        service.leave_workspace(team.workspace.id, team.owner.id)
        assert role_of(team.engine, team.workspace.id, team.owner.id) is None

    def test_new_owner_can_transfer_back(self, service, team):
        service.transfer_ownership(team.workspace.id, team.admin.id, team.owner.id)
        service.change_member_role(
            team.workspace.id, team.owner.id, RoleName.ADMIN, team.admin.id
        )
        service.transfer_ownership(team.workspace.id, team.owner.id, team.admin.id)

        assert _owner_id(team.engine, team.workspace.id) == team.owner.id
        assert role_of(team.engine, team.workspace.id, team.admin.id) == RoleName.MEMBER

    def test_member_is_ineligible(self, service, team):
        assert RoleName.MEMBER not in ELIGIBLE_NEW_OWNER_ROLES
        with pytest.raises(BadRequestError) as exc_info:
            service.transfer_ownership(team.workspace.id, team.member.id, team.owner.id)

        assert exc_info.value.error_code == "INELIGIBLE_NEW_OWNER"
        _assert_unchanged(team)

    @pytest.mark.parametrize("actor", ["co_owner", "admin", "member"])
    def test_only_owner_transfers(self, service, team, actor):
        with pytest.raises(InsufficientRoleError):
            service.transfer_ownership(
                team.workspace.id, team.admin.id, getattr(team, actor).id
            )
        _assert_unchanged(team)

    def test_new_owner_must_be_member(self, service, team):
        with pytest.raises(NotFoundError):
            service.transfer_ownership(team.workspace.id, team.outsider.id, team.owner.id)
        _assert_unchanged(team)


class TestTransferFailures:
    def test_guard_miss_rolls_back_every_write(self, service, team, monkeypatch):
        """The third write loses its guard; the first two never become visible."""
        with Session(team.engine) as session:
            member_role_id = RoleRepository(session).find_by_name(RoleName.MEMBER).id
        original = MemberRepository.update_fields

        def losing_previous_owner_write(self, member_id, expected=None, commit=True, **fields):
            if expected and fields.get("role_id") == member_role_id:
                return False
            return original(self, member_id, expected=expected, commit=commit, **fields)

        monkeypatch.setattr(MemberRepository, "update_fields", losing_previous_owner_write)

        with pytest.raises(TransferVerificationError) as exc_info:
            service.transfer_ownership(team.workspace.id, team.admin.id, team.owner.id)

        assert exc_info.value.details == {"record": "previous_owner"}
        monkeypatch.undo()
        _assert_unchanged(team)

    def test_verification_failure_restores_state(self, service, team, monkeypatch):
        def failing_verify(self, *args, **kwargs):
            raise TransferVerificationError("Ownership transfer failed verification")

        monkeypatch.setattr(MemberService, "_verify_transfer", failing_verify)

        with pytest.raises(TransferVerificationError):
            service.transfer_ownership(team.workspace.id, team.admin.id, team.owner.id)

        _assert_unchanged(team)

    def test_compensation_failure_keeps_original_error(self, service, team, monkeypatch):
        calls = {"verified": False}

        def failing_verify(self, *args, **kwargs):
            calls["verified"] = True
            raise TransferVerificationError("Ownership transfer failed verification")

        original = WorkspaceRepository.update_fields

        def broken_after_verify(self, *args, **kwargs):
            if calls["verified"]:
                raise RuntimeError("database unavailable")
            return original(self, *args, **kwargs)

        monkeypatch.setattr(MemberService, "_verify_transfer", failing_verify)
        monkeypatch.setattr(WorkspaceRepository, "update_fields", broken_after_verify)

        with pytest.raises(TransferVerificationError, match="failed verification"):
            service.transfer_ownership(team.workspace.id, team.admin.id, team.owner.id)

        # The membership restores still ran after the workspace restore failed
        assert role_of(team.engine, team.workspace.id, team.owner.id) == RoleName.OWNER
        assert role_of(team.engine, team.workspace.id, team.admin.id) == RoleName.ADMIN
        assert _owner_id(team.engine, team.workspace.id) == team.admin.id

    def test_unexpected_error_after_commit_is_compensated(self, service, team, monkeypatch):
        def exploding_verify(self, *args, **kwargs):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(MemberService, "_verify_transfer", exploding_verify)

        with pytest.raises(RuntimeError, match="connection reset"):
            service.transfer_ownership(team.workspace.id, team.admin.id, team.owner.id)

        _assert_unchanged(team)
