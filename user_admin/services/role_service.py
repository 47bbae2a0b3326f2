"""Role service: role lookup and guarded create/update/delete."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from user_admin.core.exceptions import ConflictError, NotFoundError
from user_admin.db.session import unit_of_work
from user_admin.models.role import Role
from user_admin.models.user import User
from user_admin.models.user_role import UserRole
from user_admin.services.audit_service import audit_service

logger = logging.getLogger(__name__)


class RoleService:
    """Role CRUD. Roles are seeded and rarely created in normal operation."""

    @staticmethod
    def get_role(db: Session, role_id: int) -> Role:
        role = db.query(Role).filter(Role.id == role_id).first()
        if not role:
            raise NotFoundError("Role not found")
        return role

    @staticmethod
    def get_role_by_name(db: Session, name: str) -> Role:
        role = db.query(Role).filter(Role.name == name).first()
        if not role:
            raise NotFoundError("Role not found")
        return role

    @staticmethod
    def find_by_name(db: Session, name: str) -> Optional[Role]:
        return db.query(Role).filter(Role.name == name).first()

    @staticmethod
    def list_roles(db: Session) -> List[Role]:
        return db.query(Role).order_by(Role.id).all()

    @staticmethod
    def roles_for_user(db: Session, user_id: int) -> List[Role]:
        return (
            db.query(Role)
            .join(UserRole, UserRole.role_id == Role.id)
            .filter(UserRole.user_id == user_id)
            .all()
        )

    @staticmethod
    def assign(user: User, role: Role) -> UserRole:
        """Replace whatever role the user holds with ``role``. Does not commit."""
        now = datetime.now(timezone.utc)
        assignment = user.role_assignment
        if assignment is None:
            assignment = UserRole(role=role, assigned_at=now)
            user.role_assignment = assignment
        else:
            assignment.role = role
            assignment.assigned_at = now
        return assignment

    @staticmethod
    def create_role(db: Session, name: str, description: Optional[str] = None) -> Role:
        """Create a role.

        Raises:
            ConflictError: If a role with this name already exists.
        """
        logger.info("Creating role %s", name)
        with unit_of_work(db, "creating role"):
            if RoleService.find_by_name(db, name):
                logger.warning("Attempt to create role with duplicate name: %s", name)
                raise ConflictError("Role name already exists")

            role = Role(name=name, description=description)
            db.add(role)
            audit_service.log(db, None, "Role Created", f"Role: {name}")
        db.refresh(role)
        return role

    @staticmethod
    def update_role(
        db: Session, role_id: int, name: str, description: Optional[str] = None
    ) -> Role:
        logger.info("Updating role %s", role_id)
        with unit_of_work(db, "updating role"):
            role = RoleService.get_role(db, role_id)
            existing = RoleService.find_by_name(db, name)
            if existing and existing.id != role_id:
                raise ConflictError("Role name already exists")

            old_name = role.name
            role.name = name
            role.description = description
            audit_service.log(db, None, "Role Updated", f"Role ID: {role_id}, Name: {old_name} → {name}")
        db.refresh(role)
        return role

    @staticmethod
    def delete_role(db: Session, role_id: int) -> None:
        """Delete a role that nobody holds.

        Raises:
            ConflictError: If any user is assigned the role.
        """
        logger.info("Deleting role %s", role_id)
        with unit_of_work(db, "deleting role"):
            role = RoleService.get_role(db, role_id)
            in_use = db.query(UserRole).filter(UserRole.role_id == role_id).count()
            if in_use:
                logger.warning("Attempt to delete role %s assigned to %d users", role.name, in_use)
                raise ConflictError("Cannot delete role that is assigned to users")

            db.delete(role)
            audit_service.log(db, None, "Role Deleted", f"Role: {role.name}, ID: {role_id}")


role_service = RoleService()
