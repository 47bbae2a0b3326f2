"""Auth service: JWT login, registration and token lookup."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from user_admin.core.config import settings
from user_admin.core.exceptions import AuthenticationError
from user_admin.core.security import create_access_token, decode_token, verify_password
from user_admin.db.session import unit_of_work
from user_admin.models.user import User
from user_admin.services.audit_service import audit_service
from user_admin.services.user_service import user_service

logger = logging.getLogger(__name__)


def token_claims(user: User) -> Dict[str, Any]:
    """Claims embedded in an access token for ``user``."""
    return {
        "sub": str(user.id),
        "username": user.username,
        "email": user.email,
        "team_id": user.team_id,
        "is_active": user.is_active,
        "roles": [user.role_name] if user.role_name else [],
    }


class AuthService:
    """Handles authentication."""

    @staticmethod
    def authenticate(db: Session, username: str, password: str) -> Dict[str, Any]:
        """Authenticate user and return a JWT access token.

        Raises:
            AuthenticationError: If credentials are invalid or the account is deactivated.
        """
        logger.info("Login attempt for username: %s", username)
        user = db.query(User).filter(User.username == username).first()
        if not user:
            logger.warning("Login failed - user not found: %s", username)
            raise AuthenticationError("Invalid username or password")

        if not user.is_active:
            logger.warning("Login failed - user is inactive: %s", username)
            raise AuthenticationError("Account is deactivated")

        if not verify_password(password, user.hashed_password):
            logger.warning("Login failed - invalid password for user: %s", username)
            with unit_of_work(db, "recording failed login"):
                audit_service.log(db, user.id, "Failed Login Attempt", f"Username: {username}")
            raise AuthenticationError("Invalid username or password")

        expires_delta = timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
        access_token = create_access_token(token_claims(user), expires_delta)

        with unit_of_work(db, "recording login"):
            user.last_login_at = datetime.now(timezone.utc)
            audit_service.log(db, user.id, "User Login", f"Username: {user.username}")
        db.refresh(user)

        logger.info("Login successful for user: %s", user.username)
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_at": datetime.now(timezone.utc) + expires_delta,
            "user": user,
        }

    @staticmethod
    def register(db: Session, username: str, email: str, password: str) -> User:
        """Self-service registration: role User, no team."""
        logger.info("Registration attempt for username: %s", username)
        return user_service.create_user(
            db, username, email, password, audit_action="User Registered",
        )

    @staticmethod
    def get_user_by_token(db: Session, token: str) -> Optional[User]:
        """Resolve a token to its user, or None when the token does not validate."""
        try:
            payload = decode_token(token)
        except HTTPException:
            return None
        return db.query(User).filter(User.id == int(payload["sub"])).first()


auth_service = AuthService()
