"""User, role, team and audit services."""

import pytest

from conftest import PASSWORD, make_team, make_user
from user_admin.core.exceptions import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from user_admin.core.security import verify_password
from user_admin.models.audit_log import AuditLog
from user_admin.models.role import RoleName
from user_admin.models.team import Team, TeamRequest, TeamRequestStatus
from user_admin.models.user import User
from user_admin.models.user_role import UserRole
from user_admin.services.audit_service import audit_service
from user_admin.services.auth_service import auth_service
from user_admin.services.role_service import role_service
from user_admin.services.team_request_service import team_request_service
from user_admin.services.team_service import team_service
from user_admin.services.user_service import user_service


class TestRoleService:
    def test_create_then_lookup(self, db):
        role = role_service.create_role(db, "X", "custom")
        found = role_service.get_role_by_name(db, "X")
        assert found.id == role.id
        assert found.name == "X"
        assert found.assignments == []

    def test_duplicate_name(self, db):
        with pytest.raises(ConflictError):
            role_service.create_role(db, RoleName.USER.value)

    def test_delete_unassigned(self, db):
        role = role_service.create_role(db, "X")
        role_service.delete_role(db, role.id)
        assert role_service.find_by_name(db, "X") is None

    def test_delete_assigned_conflicts(self, db):
        role = role_service.create_role(db, "X")
        user = make_user(db, "bob")
        user_service.update_user(db, user.id, "bob", "bob@example.com", True, role_id=role.id)
        with pytest.raises(ConflictError, match="assigned to users"):
            role_service.delete_role(db, role.id)

    def test_update_role(self, db):
        role = role_service.create_role(db, "X")
        updated = role_service.update_role(db, role.id, "Y", "renamed")
        assert updated.name == "Y"
        with pytest.raises(ConflictError):
            role_service.update_role(db, role.id, RoleName.ADMIN.value)

    def test_roles_for_user(self, db):
        user = make_user(db, "bob", RoleName.VIEWER)
        assert [r.name for r in role_service.roles_for_user(db, user.id)] == ["Viewer"]


class TestUserService:
    def test_create_defaults_to_user_role(self, db):
        user = user_service.create_user(db, "carol", "carol@example.com", PASSWORD)
        assert user.role_name == RoleName.USER.value
        assert user.team_id is None
        assert user.is_active
        assert verify_password(PASSWORD, user.hashed_password)
        entry = db.query(AuditLog).filter(AuditLog.action == "User Created").one()
        assert entry.user_id == user.id

    def test_create_rejects_duplicates(self, db):
        make_user(db, "carol")
        with pytest.raises(ConflictError, match="Username"):
            user_service.create_user(db, "carol", "other@example.com", PASSWORD)
        with pytest.raises(ConflictError, match="Email"):
            user_service.create_user(db, "other", "carol@example.com", PASSWORD)

    def test_create_rejects_weak_password(self, db):
        with pytest.raises(ValidationError):
            user_service.create_user(db, "carol", "carol@example.com", "password")
        assert db.query(User).count() == 0

    def test_create_refuses_manager_role(self, db):
        manager_role = role_service.get_role_by_name(db, RoleName.MANAGER.value)
        with pytest.raises(ForbiddenError):
            user_service.create_user(db, "carol", "carol@example.com", PASSWORD, role_id=manager_role.id)

    def test_update(self, db):
        user = make_user(db, "carol")
        viewer = role_service.get_role_by_name(db, RoleName.VIEWER.value)
        updated = user_service.update_user(db, user.id, "caroline", "caroline@example.com", False, viewer.id)
        assert updated.username == "caroline"
        assert not updated.is_active
        assert updated.role_name == RoleName.VIEWER.value

    def test_update_rejects_taken_username(self, db):
        make_user(db, "carol")
        dave = make_user(db, "dave")
        with pytest.raises(ConflictError):
            user_service.update_user(db, dave.id, "carol", "dave@example.com", True)

    def test_delete_cascades(self, db, team, manager):
        user = make_user(db, "carol")
        request = team_request_service.create_request(db, user.id, team.id)
        processor_request = team_request_service.create_request(db, make_user(db, "dave").id, team.id)
        team_request_service.process_request(db, processor_request.id, manager.id, approve=False)
        audit_service.log_action(db, user.id, "Custom Action")

        user_service.delete_user(db, user.id)
        user_service.delete_user(db, manager.id)
        db.expire_all()

        assert db.query(User).filter(User.username == "carol").first() is None
        assert db.query(UserRole).filter(UserRole.user_id == user.id).count() == 0
        assert db.get(TeamRequest, request.id) is None
        kept = db.get(TeamRequest, processor_request.id)
        assert kept.status == TeamRequestStatus.REJECTED
        assert kept.processed_by_user_id is None
        custom = db.query(AuditLog).filter(AuditLog.action == "Custom Action").one()
        assert custom.user_id is None
        assert db.query(AuditLog).filter(AuditLog.action == "User Deleted").count() == 2

    def test_delete_missing(self, db):
        with pytest.raises(NotFoundError):
            user_service.delete_user(db, 9999)

    def test_change_password(self, db):
        user = make_user(db, "carol")
        with pytest.raises(AuthenticationError):
            user_service.change_password(db, user.id, "wrong", "N3w!Password")
        with pytest.raises(ValidationError):
            user_service.change_password(db, user.id, PASSWORD, "weak")

        user_service.change_password(db, user.id, PASSWORD, "N3w!Password")
        db.expire_all()
        assert verify_password("N3w!Password", db.get(User, user.id).hashed_password)

    def test_set_active_is_idempotent(self, db):
        user = make_user(db, "carol")
        assert user_service.set_active(db, user.id, True) is False
        assert user_service.set_active(db, user.id, False) is True
        assert user_service.set_active(db, user.id, False) is False
        assert db.query(AuditLog).filter(AuditLog.action == "User Deactivated").count() == 1


class TestTeamService:
    def test_create_and_summaries(self, db, manager, team):
        make_user(db, "member", team=team)
        summary = team_service.list_teams(db)[0]
        assert summary["name"] == "Platform"
        assert summary["manager_name"] == "mgr"
        assert summary["member_count"] == 2

    def test_duplicate_name(self, db, team):
        with pytest.raises(ConflictError):
            team_service.create_team(db, "Platform")
        other = team_service.create_team(db, "Other")
        with pytest.raises(ConflictError):
            team_service.update_team(db, other.id, "Platform")

    def test_delete_requires_empty_team(self, db, team, manager):
        with pytest.raises(ConflictError):
            team_service.delete_team(db, team.id)

        empty = team_service.create_team(db, "Empty")
        team_service.delete_team(db, empty.id)
        assert db.query(Team).filter(Team.name == "Empty").first() is None

    def test_assign_and_remove_manager(self, db, team):
        user = make_user(db, "bob")
        team_service.assign_manager(db, team.id, user.id)
        assert team_service.get_team_manager(db, team.id).id == user.id

        other = make_user(db, "other")
        with pytest.raises(ConflictError):
            team_service.assign_manager(db, team.id, other.id)

        team_service.remove_manager(db, team.id)
        db.expire_all()
        bob = db.get(User, user.id)
        assert bob.role_name == RoleName.USER.value
        assert bob.team_id == team.id
        assert team_service.get_team_manager(db, team.id) is None

    def test_remove_manager_when_none(self, db, team):
        with pytest.raises(NotFoundError):
            team_service.remove_manager(db, team.id)

    def test_teams_for_manager(self, db, team, manager):
        assert [t["id"] for t in team_service.teams_for_manager(db, manager.id)] == [team.id]
        with pytest.raises(NotFoundError):
            team_service.teams_for_manager(db, make_user(db, "loner", RoleName.MANAGER).id)


class TestAuditService:
    def test_queries(self, db):
        user = make_user(db, "carol")
        audit_service.log_action(db, user.id, "First")
        audit_service.log_action(db, user.id, "Second")
        audit_service.log_action(db, None, "Second")

        assert [e.action for e in audit_service.by_user(db, user.id)] == ["Second", "First"]
        assert len(audit_service.by_action(db, "Second")) == 2
        assert len(audit_service.recent(db, 2)) == 2


class TestAuthService:
    def test_authenticate(self, db):
        user = make_user(db, "carol")
        result = auth_service.authenticate(db, "carol", PASSWORD)
        assert result["token_type"] == "bearer"
        assert result["user"].last_login_at is not None
        assert auth_service.get_user_by_token(db, result["access_token"]).id == user.id

    def test_bad_password_is_audited(self, db):
        user = make_user(db, "carol")
        with pytest.raises(AuthenticationError, match="Invalid username or password"):
            auth_service.authenticate(db, "carol", "nope")
        entry = db.query(AuditLog).filter(AuditLog.action == "Failed Login Attempt").one()
        assert entry.user_id == user.id

    def test_unknown_user(self, db):
        with pytest.raises(AuthenticationError):
            auth_service.authenticate(db, "ghost", PASSWORD)

    def test_inactive_user(self, db):
        make_user(db, "carol", is_active=False)
        with pytest.raises(AuthenticationError, match="deactivated"):
            auth_service.authenticate(db, "carol", PASSWORD)

    def test_invalid_token(self, db):
        assert auth_service.get_user_by_token(db, "garbage") is None
