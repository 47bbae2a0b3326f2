"""User service: user CRUD, password changes and activation."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from user_admin.core.exceptions import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from user_admin.core.security import hash_password, is_password_strong, verify_password
from user_admin.db.session import unit_of_work
from user_admin.models.audit_log import AuditLog
from user_admin.models.role import Role, RoleName
from user_admin.models.team import TeamRequest
from user_admin.models.user import User
from user_admin.services.audit_service import audit_service
from user_admin.services.role_service import role_service

logger = logging.getLogger(__name__)

WEAK_PASSWORD_MESSAGE = (
    "Password must be at least 8 characters long and contain uppercase, "
    "lowercase, digit, and special character"
)


class UserService:
    """Handles user records outside of the role/team transitions."""

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def get_user_by_username(db: Session, username: str) -> User:
        user = db.query(User).filter(User.username == username).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> User:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def list_users(db: Session) -> List[User]:
        return db.query(User).order_by(User.id).all()

    @staticmethod
    def list_active_users(db: Session) -> List[User]:
        return db.query(User).filter(User.is_active.is_(True)).order_by(User.id).all()

    @staticmethod
    def ensure_unique(
        db: Session, username: str, email: str, exclude_id: Optional[int] = None
    ) -> None:
        """Raise ConflictError if another user already has the username or email."""
        query = db.query(User)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.filter(User.username == username).first():
            logger.warning("Duplicate username: %s", username)
            raise ConflictError("Username already exists")
        if query.filter(User.email == email).first():
            logger.warning("Duplicate email: %s", email)
            raise ConflictError("Email already exists")

    @staticmethod
    def _resolve_role(db: Session, role_id: Optional[int]) -> Role:
        if role_id is None:
            return role_service.get_role_by_name(db, RoleName.USER.value)
        role = role_service.get_role(db, role_id)
        if role.name == RoleName.MANAGER.value:
            raise ForbiddenError("Use the promote-to-manager endpoint for manager promotion")
        return role

    @staticmethod
    def create_user(
        db: Session,
        username: str,
        email: str,
        password: str,
        is_active: bool = True,
        role_id: Optional[int] = None,
        actor_id: Optional[int] = None,
        audit_action: str = "User Created",
    ) -> User:
        """Create a user holding ``role_id`` (User when omitted) and no team.

        Raises:
            ConflictError: Username or email taken.
            ValidationError: Password too weak.
        """
        logger.info("Creating user with username: %s, email: %s", username, email)
        with unit_of_work(db, "creating user"):
            UserService.ensure_unique(db, username, email)
            if not is_password_strong(password):
                logger.warning("Weak password provided for user: %s", username)
                raise ValidationError(WEAK_PASSWORD_MESSAGE)
            role = UserService._resolve_role(db, role_id)

            user = User(
                username=username,
                email=email,
                hashed_password=hash_password(password),
                is_active=is_active,
                team_id=None,
            )
            role_service.assign(user, role)
            db.add(user)
            db.flush()
            audit_service.log(
                db, actor_id if actor_id is not None else user.id, audit_action,
                f"Username: {user.username}, Email: {user.email}",
            )
        db.refresh(user)
        logger.info("Created user %s with ID %s", user.username, user.id)
        return user

    @staticmethod
    def update_user(
        db: Session,
        user_id: int,
        username: str,
        email: str,
        is_active: bool,
        role_id: Optional[int] = None,
    ) -> User:
        """Update identity fields and optionally the role (never to Manager)."""
        logger.info("Updating user with ID: %s", user_id)
        with unit_of_work(db, "updating user"):
            user = UserService.get_user(db, user_id)
            UserService.ensure_unique(db, username, email, exclude_id=user_id)

            old_username, old_email = user.username, user.email
            user.username = username
            user.email = email
            user.is_active = is_active
            if role_id is not None:
                role_service.assign(user, UserService._resolve_role(db, role_id))

            audit_service.log(
                db, user_id, "User Updated",
                f"Username: {old_username} → {username}, Email: {old_email} → {email}",
            )
        db.refresh(user)
        return user

    @staticmethod
    def delete_user(db: Session, user_id: int) -> None:
        """Delete a user and everything that hangs off them.

        Audit entries and processed requests keep their rows with the user
        reference cleared; the user's own requests and role assignment go.
        """
        logger.info("Deleting user with ID: %s", user_id)
        with unit_of_work(db, "deleting user"):
            user = UserService.get_user(db, user_id)
            username = user.username

            db.query(AuditLog).filter(AuditLog.user_id == user_id).update(
                {AuditLog.user_id: None}, synchronize_session=False
            )
            db.query(TeamRequest).filter(TeamRequest.processed_by_user_id == user_id).update(
                {TeamRequest.processed_by_user_id: None}, synchronize_session=False
            )
            db.query(TeamRequest).filter(TeamRequest.user_id == user_id).delete(
                synchronize_session=False
            )
            db.delete(user)
            audit_service.log(db, None, "User Deleted", f"Username: {username}, ID: {user_id}")
        logger.info("Deleted user %s (ID: %s)", username, user_id)

    @staticmethod
    def change_password(db: Session, user_id: int, current_password: str, new_password: str) -> None:
        logger.info("Changing password for user ID: %s", user_id)
        with unit_of_work(db, "changing password"):
            user = UserService.get_user(db, user_id)
            if not verify_password(current_password, user.hashed_password):
                logger.warning("Invalid current password provided for user %s", user.username)
                raise AuthenticationError("Current password is incorrect")
            if not is_password_strong(new_password):
                raise ValidationError(WEAK_PASSWORD_MESSAGE)

            user.hashed_password = hash_password(new_password)
            audit_service.log(db, user_id, "Password Changed", f"User: {user.username}")

    @staticmethod
    def set_active(db: Session, user_id: int, active: bool) -> bool:
        """Activate or deactivate a user.

        Returns False when the user was already in the requested state; that
        is a successful no-op with no audit entry.
        """
        verb = "activating" if active else "deactivating"
        with unit_of_work(db, f"{verb} user"):
            user = UserService.get_user(db, user_id)
            if user.is_active == active:
                logger.info("User %s is already %s", user.username, "active" if active else "inactive")
                return False

            user.is_active = active
            audit_service.log(
                db, user_id, "User Activated" if active else "User Deactivated",
                f"Username: {user.username}",
            )
        return True


user_service = UserService()
