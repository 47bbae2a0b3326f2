"""Team service: team CRUD and the manager-slot primitives."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from user_admin.core.exceptions import ConflictError, NotFoundError
from user_admin.db.session import unit_of_work
from user_admin.models.role import Role, RoleName
from user_admin.models.team import Team
from user_admin.models.user import User
from user_admin.models.user_role import UserRole
from user_admin.services.audit_service import audit_service
from user_admin.services.role_service import role_service

logger = logging.getLogger(__name__)


class TeamService:
    """Teams and the "at most one manager per team" bookkeeping."""

    @staticmethod
    def get_team(db: Session, team_id: int) -> Team:
        team = db.query(Team).filter(Team.id == team_id).first()
        if not team:
            raise NotFoundError("Team not found")
        return team

    @staticmethod
    def get_team_by_name(db: Session, name: str) -> Team:
        team = db.query(Team).filter(Team.name == name).first()
        if not team:
            raise NotFoundError("Team not found")
        return team

    @staticmethod
    def lock_team(db: Session, team_id: int) -> Team:
        """Load a team with a row lock held until the surrounding transaction ends.

        Manager placement for the same team is serialized behind this lock.
        Take it before any other read of the operation, and check the slot
        with ``locked_managers`` rather than ``manager_count``: a plain read
        under REPEATABLE READ can still see the snapshot from before a
        concurrent placement committed.
        """
        team = db.query(Team).filter(Team.id == team_id).with_for_update().populate_existing().first()
        if not team:
            raise NotFoundError("Team not found")
        return team

    @staticmethod
    def _managers_query(db: Session, team_id: int):
        return (
            db.query(User)
            .join(UserRole, UserRole.user_id == User.id)
            .join(Role, Role.id == UserRole.role_id)
            .filter(User.team_id == team_id, Role.name == RoleName.MANAGER.value)
        )

    @staticmethod
    def locked_managers(db: Session, team_id: int) -> List[User]:
        """Current managers of the team, read with row locks (latest committed state)."""
        return TeamService._managers_query(db, team_id).with_for_update().populate_existing().all()

    @staticmethod
    def manager_count(db: Session, team_id: int) -> int:
        return TeamService._managers_query(db, team_id).count()

    @staticmethod
    def get_team_manager(db: Session, team_id: int) -> Optional[User]:
        return TeamService._managers_query(db, team_id).first()

    @staticmethod
    def member_count(db: Session, team_id: int) -> int:
        return db.query(User).filter(User.team_id == team_id).count()

    @staticmethod
    def summarize(db: Session, team: Team) -> Dict[str, Any]:
        manager = TeamService.get_team_manager(db, team.id)
        return {
            "id": team.id,
            "name": team.name,
            "description": team.description,
            "manager_name": manager.username if manager else None,
            "member_count": TeamService.member_count(db, team.id),
        }

    @staticmethod
    def list_teams(db: Session) -> List[Dict[str, Any]]:
        """All teams with their manager's name and member count."""
        teams = db.query(Team).order_by(Team.id).all()
        return [TeamService.summarize(db, team) for team in teams]

    @staticmethod
    def teams_for_manager(db: Session, manager_id: int) -> List[Dict[str, Any]]:
        manager = db.query(User).filter(User.id == manager_id).first()
        if not manager or manager.team_id is None:
            raise NotFoundError("Manager not found or not assigned to a team")
        team = TeamService.get_team(db, manager.team_id)
        return [TeamService.summarize(db, team)]

    @staticmethod
    def create_team(db: Session, name: str, description: str = "") -> Team:
        """Create a team.

        Raises:
            ConflictError: If the team name is taken.
        """
        logger.info("Creating team with name: %s", name)
        with unit_of_work(db, "creating team"):
            if db.query(Team).filter(Team.name == name).first():
                logger.warning("Attempt to create team with duplicate name: %s", name)
                raise ConflictError("Team name already exists")

            team = Team(name=name, description=description or "")
            db.add(team)
            audit_service.log(db, None, "Team Created", f"Team: {name}")
        db.refresh(team)
        logger.info("Created team %s with ID %s", team.name, team.id)
        return team

    @staticmethod
    def update_team(db: Session, team_id: int, name: str, description: str = "") -> Team:
        logger.info("Updating team with ID: %s", team_id)
        with unit_of_work(db, "updating team"):
            team = TeamService.get_team(db, team_id)
            existing = db.query(Team).filter(Team.name == name).first()
            if existing and existing.id != team_id:
                logger.warning("Attempt to update team %s with duplicate name: %s", team_id, name)
                raise ConflictError("Team name already exists")

            old_name = team.name
            team.name = name
            team.description = description or ""
            audit_service.log(db, None, "Team Updated", f"Team ID: {team_id}, Name: {old_name} → {name}")
        db.refresh(team)
        return team

    @staticmethod
    def delete_team(db: Session, team_id: int) -> None:
        """Delete an empty team along with its request history.

        Raises:
            ConflictError: If any user still belongs to the team.
        """
        logger.info("Deleting team with ID: %s", team_id)
        with unit_of_work(db, "deleting team"):
            team = TeamService.get_team(db, team_id)
            members = TeamService.member_count(db, team_id)
            if members:
                logger.warning("Attempt to delete team %s that has %d members", team.name, members)
                raise ConflictError(
                    "Cannot delete team that has members. Please reassign or remove all members first."
                )

            for request in list(team.requests):
                db.delete(request)
            db.delete(team)
            audit_service.log(db, None, "Team Deleted", f"Team: {team.name}, ID: {team_id}")

    @staticmethod
    def place_manager(db: Session, team: Team, user: User) -> None:
        """Move ``user`` into ``team`` holding the Manager role. Does not commit.

        Callers hold the team lock and have checked the manager slot is free.
        """
        user.team_id = team.id
        role_service.assign(user, role_service.get_role_by_name(db, RoleName.MANAGER.value))

    @staticmethod
    def assign_manager(
        db: Session, team_id: int, user_id: int, acting_user_id: Optional[int] = None
    ) -> None:
        """Make a user the manager of a team.

        Raises:
            NotFoundError: If the team or user is missing.
            ConflictError: If the team already has a manager.
        """
        logger.info("Assigning manager %s to team %s", user_id, team_id)
        with unit_of_work(db, "assigning manager"):
            team = TeamService.lock_team(db, team_id)
            user = db.query(User).filter(User.id == user_id).with_for_update().populate_existing().first()
            if not user:
                raise NotFoundError("User not found")

            if TeamService.locked_managers(db, team_id):
                raise ConflictError("Team already has a manager. Please remove the current manager first.")

            TeamService.place_manager(db, team, user)
            audit_service.log(
                db, acting_user_id, "Manager Assigned",
                f"User: {user.username} assigned as manager of team: {team.name}",
            )
        logger.info("Assigned manager %s to team %s", user.username, team.name)

    @staticmethod
    def remove_manager(db: Session, team_id: int, acting_user_id: Optional[int] = None) -> None:
        """Return a team's manager to the User role. The user stays in the team.

        Raises:
            NotFoundError: If the team has no manager.
        """
        logger.info("Removing manager from team %s", team_id)
        with unit_of_work(db, "removing manager"):
            team = TeamService.lock_team(db, team_id)
            manager = TeamService.get_team_manager(db, team_id)
            if not manager:
                raise NotFoundError("No manager found for this team")

            role_service.assign(manager, role_service.get_role_by_name(db, RoleName.USER.value))
            audit_service.log(
                db, acting_user_id, "Manager Removed",
                f"Manager: {manager.username} removed from team: {team.name}",
            )
        logger.info("Removed manager %s from team %s", manager.username, team_id)


team_service = TeamService()
