"""Integration tests for membership routes."""

from uuid import uuid4

from tests.db_utils import auth_headers, role_of
from teamsync.db.models import RoleName


def _url(team, suffix=""):
    return f"/api/workspace/{team.workspace.id}{suffix}"


class TestAuthentication:
    def test_missing_token(self, client, team):
        response = client.get(_url(team, "/members"))

        assert response.status_code == 401
        assert response.json()["errorCode"] == "AUTHENTICATION_FAILED"

    def test_garbage_token(self, client, team):
        response = client.get(
            _url(team, "/members"), headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401


class TestJoin:
    def test_join_by_invite(self, client, team):
        response = client.post(
            f"/api/workspace/{team.workspace.invite_code}/join",
            headers=auth_headers(team.outsider),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Successfully joined the workspace"
        assert data["workspaceId"] == str(team.workspace.id)
        assert data["role"]["name"] == "MEMBER"

    def test_join_twice(self, client, team):
        url = f"/api/workspace/{team.workspace.invite_code}/join"
        client.post(url, headers=auth_headers(team.outsider))

        response = client.post(url, headers=auth_headers(team.outsider))

        assert response.status_code == 400
        assert response.json() == {
            "message": "You are already a member of this workspace",
            "errorCode": "ALREADY_MEMBER",
        }

    def test_unknown_code(self, client, team):
        response = client.post(
            "/api/workspace/zzzzzzzz/join", headers=auth_headers(team.outsider)
        )
        assert response.status_code == 404
        assert response.json()["errorCode"] == "INVALID_INVITE_CODE"


class TestListMembers:
    def test_members_with_roles(self, client, team):
        response = client.get(_url(team, "/members"), headers=auth_headers(team.member))

        assert response.status_code == 200
        members = response.json()["members"]
        assert len(members) == 5
        by_user = {m["userId"]: m["role"]["name"] for m in members}
        assert by_user[str(team.owner.id)] == "OWNER"
        assert by_user[str(team.co_owner.id)] == "CO_OWNER"
        assert set(members[0]) == {"id", "workspaceId", "userId", "role", "joinedAt"}

    def test_outsider_gets_not_a_member(self, client, team):
        response = client.get(_url(team, "/members"), headers=auth_headers(team.outsider))

        assert response.status_code == 404
        assert response.json()["errorCode"] == "NOT_A_MEMBER"

    def test_unknown_workspace(self, client, team):
        response = client.get(
            f"/api/workspace/{uuid4()}/members", headers=auth_headers(team.owner)
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Workspace not found"


class TestRemoveAndLeave:
    def test_admin_removes_member(self, client, team):
        response = client.post(
            _url(team, "/remove"),
            json={"memberId": str(team.member.id)},
            headers=auth_headers(team.admin),
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Member removed successfully"}
        assert role_of(team.engine, team.workspace.id, team.member.id) is None

    def test_remove_owner_is_bad_request(self, client, team):
        response = client.post(
            _url(team, "/remove"),
            json={"memberId": str(team.owner.id)},
            headers=auth_headers(team.co_owner),
        )

        assert response.status_code == 400
        assert response.json()["errorCode"] == "CANNOT_REMOVE_OWNER"

    def test_admin_cannot_remove_admin(self, client, team):
        response = client.post(
            _url(team, "/remove"),
            json={"memberId": str(team.second_admin.id)},
            headers=auth_headers(team.admin),
        )

        assert response.status_code == 403
        data = response.json()
        assert data["errorCode"] == "INSUFFICIENT_ROLE"
        assert data["message"] == "ADMIN cannot modify another ADMIN"

    def test_missing_member_id_is_validation_error(self, client, team):
        response = client.post(_url(team, "/remove"), json={}, headers=auth_headers(team.owner))

        assert response.status_code == 400
        data = response.json()
        assert data["errorCode"] == "VALIDATION_ERROR"
        assert data["errors"][0]["field"] == "memberId"

    def test_member_leaves(self, client, team):
        response = client.post(_url(team, "/leave"), headers=auth_headers(team.member))

        assert response.status_code == 200
        assert response.json()["message"] == "Successfully left the workspace"

    def test_owner_cannot_leave(self, client, team):
        response = client.post(_url(team, "/leave"), headers=auth_headers(team.owner))

        assert response.status_code == 400
        assert response.json()["errorCode"] == "OWNER_CANNOT_LEAVE"


class TestRoleRoutes:
    def test_promote_requires_acknowledgement(self, client, team):
        response = client.post(
            _url(team, "/promote-co-owner"),
            json={"memberId": str(team.admin.id)},
            headers=auth_headers(team.owner),
        )

        assert response.status_code == 400
        assert response.json()["errorCode"] == "CONFIRMATION_REQUIRED"

    def test_promote_with_acknowledgement(self, client, team):
        response = client.post(
            _url(team, "/promote-co-owner"),
            json={"memberId": str(team.admin.id), "acknowledged": True},
            headers=auth_headers(team.owner),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Member promoted to co-owner"
        assert data["member"]["role"]["name"] == "CO_OWNER"

    def test_change_role(self, client, team):
        response = client.put(
            _url(team, f"/member/{team.member.id}/role"),
            json={"role": "ADMIN"},
            headers=auth_headers(team.co_owner),
        )

        assert response.status_code == 200
        assert response.json()["member"]["role"]["name"] == "ADMIN"
        assert role_of(team.engine, team.workspace.id, team.member.id) == RoleName.ADMIN

    def test_change_role_rejects_unknown_role(self, client, team):
        response = client.put(
            _url(team, f"/member/{team.member.id}/role"),
            json={"role": "GUEST"},
            headers=auth_headers(team.owner),
        )
        assert response.status_code == 400
        assert response.json()["errorCode"] == "VALIDATION_ERROR"

    def test_change_role_to_co_owner_redirects(self, client, team):
        response = client.put(
            _url(team, f"/member/{team.member.id}/role"),
            json={"role": "CO_OWNER"},
            headers=auth_headers(team.owner),
        )
        assert response.status_code == 400
        assert response.json()["errorCode"] == "USE_CO_OWNER_PROMOTION"


class TestTransferOwnership:
    def test_transfer(self, client, team):
        response = client.post(
            _url(team, "/transfer-ownership"),
            json={"newOwnerId": str(team.admin.id)},
            headers=auth_headers(team.owner),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Workspace ownership transferred successfully"
        assert data["workspace"]["ownerId"] == str(team.admin.id)
        assert data["newOwner"]["role"]["name"] == "OWNER"
        assert data["previousOwner"]["role"]["name"] == "MEMBER"
        assert data["previousOwner"]["userId"] == str(team.owner.id)

    def test_transfer_to_member_rejected(self, client, team):
        response = client.post(
            _url(team, "/transfer-ownership"),
            json={"newOwnerId": str(team.member.id)},
            headers=auth_headers(team.owner),
        )

        assert response.status_code == 400
        assert response.json()["errorCode"] == "INELIGIBLE_NEW_OWNER"
        assert role_of(team.engine, team.workspace.id, team.owner.id) == RoleName.OWNER

    def test_non_owner_cannot_transfer(self, client, team):
        response = client.post(
            _url(team, "/transfer-ownership"),
            json={"newOwnerId": str(team.admin.id)},
            headers=auth_headers(team.co_owner),
        )
        assert response.status_code == 403
