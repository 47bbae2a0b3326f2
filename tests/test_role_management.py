"""Manager promotion/demotion and role-change authorization."""

import pytest
from sqlalchemy import event
from sqlalchemy.orm import sessionmaker

from conftest import make_team, make_user
from user_admin.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from user_admin.models.audit_log import AuditLog
from user_admin.models.role import RoleName
from user_admin.models.team import TeamRequestStatus
from user_admin.models.user import User
from user_admin.services.role_management_service import role_management_service
from user_admin.services.team_request_service import team_request_service
from user_admin.services.team_service import team_service


def _reload(db, user):
    db.expire_all()
    return db.query(User).filter(User.id == user.id).one()


class TestPromoteToManager:
    def test_promotes_user_into_team(self, db, admin, team):
        user = make_user(db, "alice")
        role_management_service.promote_to_manager(db, admin.id, user.id, team.id)

        user = _reload(db, user)
        assert user.role_name == RoleName.MANAGER.value
        assert user.team_id == team.id
        assert team_service.manager_count(db, team.id) == 1
        entry = db.query(AuditLog).filter(AuditLog.action == "User Promoted to Manager").one()
        assert entry.user_id == admin.id

    def test_viewer_can_be_promoted(self, db, admin, team):
        viewer = make_user(db, "vic", RoleName.VIEWER)
        role_management_service.promote_to_manager(db, admin.id, viewer.id, team.id)
        assert _reload(db, viewer).role_name == RoleName.MANAGER.value

    def test_second_promotion_conflicts(self, db, admin, team):
        first = make_user(db, "first")
        second = make_user(db, "second")
        role_management_service.promote_to_manager(db, admin.id, first.id, team.id)

        with pytest.raises(ConflictError, match="Team already has a manager: first"):
            role_management_service.promote_to_manager(db, admin.id, second.id, team.id)

        assert team_service.manager_count(db, team.id) == 1
        assert _reload(db, second).role_name == RoleName.USER.value
        assert _reload(db, second).team_id is None

    def test_non_admin_cannot_promote(self, db, manager, team):
        other_team = make_team(db, "Other")
        user = make_user(db, "bob")
        with pytest.raises(ForbiddenError):
            role_management_service.promote_to_manager(db, manager.id, user.id, other_team.id)

    def test_missing_user_and_team(self, db, admin, team):
        with pytest.raises(NotFoundError):
            role_management_service.promote_to_manager(db, admin.id, 9999, team.id)
        user = make_user(db, "bob")
        with pytest.raises(NotFoundError):
            role_management_service.promote_to_manager(db, admin.id, user.id, 9999)

    def test_existing_manager_cannot_take_second_team(self, db, admin, manager):
        other_team = make_team(db, "Other")
        with pytest.raises(ConflictError):
            role_management_service.promote_to_manager(db, admin.id, manager.id, other_team.id)

    def test_admin_cannot_be_promoted(self, db, admin, team):
        other_admin = make_user(db, "root2", RoleName.ADMIN)
        with pytest.raises(InvalidStateError):
            role_management_service.promote_to_manager(db, admin.id, other_admin.id, team.id)


class TestDemoteManager:
    def test_demoted_manager_keeps_team(self, db, admin, manager, team):
        # A demoted manager stays a member of the team they managed.
        role_management_service.demote_manager(db, admin.id, manager.id)

        manager = _reload(db, manager)
        assert manager.role_name == RoleName.USER.value
        assert manager.team_id == team.id
        assert team_service.manager_count(db, team.id) == 0
        assert db.query(AuditLog).filter(AuditLog.action == "Manager Demoted").count() == 1

    def test_demote_non_manager(self, db, admin):
        user = make_user(db, "bob")
        with pytest.raises(InvalidStateError, match="not a manager"):
            role_management_service.demote_manager(db, admin.id, user.id)

    def test_demote_missing(self, db, admin):
        with pytest.raises(NotFoundError, match="Manager not found"):
            role_management_service.demote_manager(db, admin.id, 9999)

    def test_only_admin_demotes(self, db, manager):
        with pytest.raises(ForbiddenError):
            role_management_service.demote_manager(db, manager.id, manager.id)

    def test_slot_free_after_demotion(self, db, admin, manager, team):
        role_management_service.demote_manager(db, admin.id, manager.id)
        successor = make_user(db, "next")
        role_management_service.promote_to_manager(db, admin.id, successor.id, team.id)
        assert team_service.get_team_manager(db, team.id).id == successor.id


class TestChangeUserRole:
    def test_admin_cannot_assign_manager(self, db, admin):
        user = make_user(db, "bob")
        with pytest.raises(ForbiddenError, match="promote-to-manager"):
            role_management_service.change_user_role(db, admin.id, user.id, RoleName.MANAGER.value)
        assert _reload(db, user).role_name == RoleName.USER.value

    def test_admin_changes_any_other_role(self, db, admin):
        user = make_user(db, "bob")
        role_management_service.change_user_role(db, admin.id, user.id, RoleName.VIEWER.value)
        assert _reload(db, user).role_name == RoleName.VIEWER.value

        role_management_service.change_user_role(db, admin.id, user.id, RoleName.ADMIN.value)
        assert _reload(db, user).role_name == RoleName.ADMIN.value

        entry = (
            db.query(AuditLog)
            .filter(AuditLog.action == "User Role Changed")
            .order_by(AuditLog.id)
            .first()
        )
        assert entry.details == "User: bob, Role: User → Viewer, By: root"

    def test_manager_toggles_member_roles(self, db, manager, team):
        member = make_user(db, "member", team=team)
        role_management_service.change_user_role(db, manager.id, member.id, RoleName.VIEWER.value)
        assert _reload(db, member).role_name == RoleName.VIEWER.value
        role_management_service.change_user_role(db, manager.id, member.id, RoleName.USER.value)
        assert _reload(db, member).role_name == RoleName.USER.value

    @pytest.mark.parametrize("new_role", [r.value for r in RoleName])
    def test_manager_cannot_touch_other_team(self, db, manager, new_role):
        other_team = make_team(db, "Other")
        outsider = make_user(db, "outsider", team=other_team)
        with pytest.raises(ForbiddenError):
            role_management_service.change_user_role(db, manager.id, outsider.id, new_role)

    def test_manager_cannot_touch_teamless_user(self, db, manager):
        loner = make_user(db, "loner")
        with pytest.raises(ForbiddenError):
            role_management_service.change_user_role(db, manager.id, loner.id, RoleName.VIEWER.value)

    @pytest.mark.parametrize("new_role", [RoleName.ADMIN.value, RoleName.MANAGER.value])
    def test_manager_cannot_grant_elevated_roles(self, db, manager, team, new_role):
        member = make_user(db, "member", team=team)
        with pytest.raises(ForbiddenError):
            role_management_service.change_user_role(db, manager.id, member.id, new_role)

    def test_manager_without_team_is_denied(self, db):
        orphan_manager = make_user(db, "orphan", RoleName.MANAGER)
        loner = make_user(db, "loner")
        with pytest.raises(ForbiddenError):
            role_management_service.change_user_role(db, orphan_manager.id, loner.id, RoleName.VIEWER.value)

    @pytest.mark.parametrize("actor_role", [RoleName.USER, RoleName.VIEWER])
    def test_members_cannot_change_roles(self, db, team, actor_role):
        actor = make_user(db, "actor", actor_role, team=team)
        target = make_user(db, "target", team=team)
        with pytest.raises(ForbiddenError, match="Insufficient permissions"):
            role_management_service.change_user_role(db, actor.id, target.id, RoleName.VIEWER.value)

    def test_unknown_role(self, db, admin):
        user = make_user(db, "bob")
        with pytest.raises(NotFoundError, match="Role not found"):
            role_management_service.change_user_role(db, admin.id, user.id, "Superuser")


class TestAvailableRoles:
    def test_admin(self, db, admin):
        user = make_user(db, "bob")
        assert role_management_service.available_roles_for_user(db, admin.id, user.id) == ["User", "Viewer"]

    def test_manager_same_team(self, db, manager, team):
        member = make_user(db, "member", team=team)
        assert role_management_service.available_roles_for_user(db, manager.id, member.id) == ["User", "Viewer"]

    def test_manager_other_team(self, db, manager):
        outsider = make_user(db, "outsider", team=make_team(db, "Other"))
        assert role_management_service.available_roles_for_user(db, manager.id, outsider.id) == []

    def test_regular_user(self, db, team):
        actor = make_user(db, "actor", team=team)
        target = make_user(db, "target", team=team)
        assert role_management_service.available_roles_for_user(db, actor.id, target.id) == []


def test_join_scenario(db, admin):
    team = make_team(db, "Five", team_id=5)
    requester = make_user(db, "u", RoleName.VIEWER)
    candidate = make_user(db, "m")

    role_management_service.promote_to_manager(db, admin.id, candidate.id, team.id)
    request = team_request_service.create_request(db, requester.id, 5, "let me in")
    processed = team_request_service.process_request(db, request.id, candidate.id, approve=True)

    assert processed.status == TeamRequestStatus.APPROVED
    assert _reload(db, requester).team_id == 5

    actions = [
        entry.action
        for entry in db.query(AuditLog).order_by(AuditLog.id).all()
        if entry.action.startswith("Team Request")
    ]
    assert actions == ["Team Request Created", "Team Request Approved"]


class TestPromotionLocking:
    def test_team_lock_is_first_statement(self, db, engine, admin, team):
        admin_id, team_id = admin.id, team.id
        user_id = make_user(db, "alice").id
        statements = []

        def capture(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        event.listen(engine, "before_cursor_execute", capture)
        try:
            role_management_service.promote_to_manager(db, admin_id, user_id, team_id)
        finally:
            event.remove(engine, "before_cursor_execute", capture)

        assert "FROM teams" in statements[0]
        assert "FROM users" not in statements[0]

    def test_second_session_sees_committed_manager(self, db, engine, admin, team):
        first = make_user(db, "first")
        second = make_user(db, "second")
        admin_id, team_id, first_id, second_id = admin.id, team.id, first.id, second.id

        other = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
        try:
            # Load both users before the first promotion commits.
            assert other.get(User, second_id).team_id is None
            assert team_service.get_team_manager(other, team_id) is None

            role_management_service.promote_to_manager(db, admin_id, first_id, team_id)

            with pytest.raises(ConflictError, match="Team already has a manager: first"):
                role_management_service.promote_to_manager(other, admin_id, second_id, team_id)
        finally:
            other.close()

        db.expire_all()
        assert team_service.manager_count(db, team_id) == 1
        assert db.get(User, second_id).role_name == RoleName.USER.value
