"""Role management: who may change whose role, and manager promotion/demotion.

Rules, by the acting user's current role:

* Admin may assign any role except Manager. Manager placement goes through
  ``promote_to_manager`` because it also moves the user into the team and
  must respect the one-manager-per-team rule.
* Manager may switch users of their own team between User and Viewer.
* Everyone else may not change roles.

``available_roles_for_user`` answers the same question for UI affordances
and must stay in step with ``validate_role_change``.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from user_admin.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from user_admin.db.session import unit_of_work
from user_admin.models.role import RoleName
from user_admin.models.user import User
from user_admin.services.audit_service import audit_service
from user_admin.services.role_service import role_service
from user_admin.services.team_service import team_service

logger = logging.getLogger(__name__)

MEMBER_ROLES = (RoleName.USER.value, RoleName.VIEWER.value)


class RoleManagementService:
    """Role transitions for users, validated against the acting user's role and team."""

    @staticmethod
    def _get_user(db: Session, user_id: int, missing: str = "User not found") -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError(missing)
        return user

    @staticmethod
    def _require_admin(db: Session, user_id: int, message: str) -> User:
        actor = db.query(User).filter(User.id == user_id).first()
        if not actor or not actor.has_role(RoleName.ADMIN):
            raise ForbiddenError(message)
        return actor

    @staticmethod
    def promote_to_manager(db: Session, admin_id: int, user_id: int, team_id: int) -> None:
        """Make ``user_id`` the manager of ``team_id``.

        Raises:
            ForbiddenError: The actor is not an Admin.
            NotFoundError: User or team missing.
            ConflictError: The team already has a manager, or the user is a manager.
            InvalidStateError: The user's current role is neither User nor Viewer.
        """
        logger.info("Admin %s promoting user %s to manager of team %s", admin_id, user_id, team_id)
        with unit_of_work(db, "promoting user to manager"):
            team = team_service.lock_team(db, team_id)
            RoleManagementService._require_admin(db, admin_id, "Only admins can promote users to manager")
            user = (
                db.query(User)
                .filter(User.id == user_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
            if not user:
                raise NotFoundError("User not found")

            managers = team_service.locked_managers(db, team_id)
            if managers:
                raise ConflictError(
                    f"Team already has a manager: {managers[0].username}. "
                    "Remove current manager first."
                )

            current_role = user.role_name
            if current_role == RoleName.MANAGER.value:
                raise ConflictError("User is already a manager of another team")
            if current_role not in MEMBER_ROLES:
                raise InvalidStateError("Only User or Viewer roles can be promoted to Manager")

            team_service.place_manager(db, team, user)
            audit_service.log(
                db, admin_id, "User Promoted to Manager",
                f"User: {user.username} promoted to manager of team: {team.name}",
            )
        logger.info("Promoted user %s to manager of team %s", user.username, team.name)

    @staticmethod
    def demote_manager(db: Session, admin_id: int, manager_id: int) -> None:
        """Return a manager to the User role.

        The demoted user keeps their team; they remain a member, no longer its manager.
        """
        logger.info("Admin %s demoting manager %s", admin_id, manager_id)
        with unit_of_work(db, "demoting manager"):
            RoleManagementService._require_admin(db, admin_id, "Only admins can demote managers")
            manager = RoleManagementService._get_user(db, manager_id, "Manager not found")
            if not manager.has_role(RoleName.MANAGER):
                raise InvalidStateError("User is not a manager")

            team_name = manager.team.name if manager.team else "Unknown"
            role_service.assign(manager, role_service.get_role_by_name(db, RoleName.USER.value))
            audit_service.log(
                db, admin_id, "Manager Demoted",
                f"Manager: {manager.username} demoted from team: {team_name}",
            )
        logger.info("Demoted manager %s", manager.username)

    @staticmethod
    def validate_role_change(db: Session, acting_user_id: int, target_user_id: int, new_role: str) -> None:
        """Raise unless ``acting_user_id`` may give ``target_user_id`` the role ``new_role``."""
        actor = db.query(User).filter(User.id == acting_user_id).first()
        target = db.query(User).filter(User.id == target_user_id).first()
        if not actor or not target:
            raise NotFoundError("User not found")

        if actor.has_role(RoleName.ADMIN):
            if new_role == RoleName.MANAGER.value:
                raise ForbiddenError("Use the promote-to-manager endpoint for manager promotion")
            return

        if actor.has_role(RoleName.MANAGER):
            if actor.team_id is None or actor.team_id != target.team_id:
                raise ForbiddenError("Managers can only change roles of users in their team")
            if target.role_name not in MEMBER_ROLES:
                raise ForbiddenError("Managers can only change User and Viewer roles")
            if new_role not in MEMBER_ROLES:
                raise ForbiddenError("Managers can only assign User or Viewer roles")
            return

        raise ForbiddenError("Insufficient permissions to change roles")

    @staticmethod
    def change_user_role(db: Session, acting_user_id: int, target_user_id: int, new_role: str) -> None:
        """Replace the target's role with ``new_role`` after validating the actor may do so."""
        logger.info("User %s changing role of user %s to %s", acting_user_id, target_user_id, new_role)
        with unit_of_work(db, "changing role"):
            RoleManagementService.validate_role_change(db, acting_user_id, target_user_id, new_role)
            role = role_service.get_role_by_name(db, new_role)

            actor = RoleManagementService._get_user(db, acting_user_id)
            target = RoleManagementService._get_user(db, target_user_id)
            old_role = target.role_name or "None"

            role_service.assign(target, role)
            audit_service.log(
                db, acting_user_id, "User Role Changed",
                f"User: {target.username}, Role: {old_role} → {new_role}, By: {actor.username}",
            )
        logger.info("Changed role of user %s to %s", target.username, new_role)

    @staticmethod
    def available_roles_for_user(db: Session, acting_user_id: int, target_user_id: int) -> List[str]:
        """Role names the actor could assign to the target through ``change_user_role``."""
        actor = db.query(User).filter(User.id == acting_user_id).first()
        target = db.query(User).filter(User.id == target_user_id).first()
        if not actor or not target:
            raise NotFoundError("User not found")

        if actor.has_role(RoleName.ADMIN):
            return list(MEMBER_ROLES)
        if actor.has_role(RoleName.MANAGER):
            if actor.team_id is not None and actor.team_id == target.team_id:
                return list(MEMBER_ROLES)
        return []


role_management_service = RoleManagementService()
