"""Password hashing, JWT handling and role/team guard dependencies."""

import logging
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, Path
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from user_admin.core.config import settings
from user_admin.core.exceptions import forbidden, unauthorized
from user_admin.db.session import get_db
from user_admin.models.role import RoleName
from user_admin.models.user import User

logger = logging.getLogger(__name__)

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)

BCRYPT_ROUNDS = 12

_UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LOWER = "abcdefghijklmnopqrstuvwxyz"
_DIGITS = "0123456789"
_SPECIAL = "!@#$%^&*()_+-=[]{}|;:,.<>?"


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash. Empty input never matches."""
    if not plain_password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def is_password_strong(password: Optional[str]) -> bool:
    """At least 8 characters with an uppercase, lowercase, digit and special character."""
    if not password:
        return False
    return (
        len(password) >= 8
        and re.search(r"[A-Z]", password) is not None
        and re.search(r"[a-z]", password) is not None
        and re.search(r"[0-9]", password) is not None
        and re.search(r"[\W_]", password) is not None
    )


def generate_secure_password(length: int = 12) -> str:
    """Generate a random password that satisfies ``is_password_strong``."""
    if length < 8:
        raise ValueError("Password length must be at least 8 characters")

    chars = [
        secrets.choice(_UPPER),
        secrets.choice(_LOWER),
        secrets.choice(_DIGITS),
        secrets.choice(_SPECIAL),
    ]
    alphabet = _UPPER + _LOWER + _DIGITS + _SPECIAL
    chars.extend(secrets.choice(alphabet) for _ in range(length - 4))

    # Fisher-Yates with a CSPRNG
    for i in range(len(chars) - 1, 0, -1):
        j = secrets.randbelow(i + 1)
        chars[i], chars[j] = chars[j], chars[i]
    return "".join(chars)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    )
    to_encode.update({
        "exp": expire,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
    })
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token (signature, issuer, audience, expiry)."""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
    except JWTError:
        raise unauthorized("Invalid or expired token")


async def get_current_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: Session = Depends(get_db),
) -> dict:
    """Return the validated token payload of the caller.

    Tokens issued before the account was deactivated or deleted stop
    working immediately.
    """
    if credentials is None:
        raise unauthorized("Authentication required")
    payload = decode_token(credentials.credentials)
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise unauthorized("Invalid token payload")
    if payload.get("is_active") is False:
        raise unauthorized("Account is deactivated")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise unauthorized("User no longer exists")
    if not user.is_active:
        logger.warning("Rejected token for deactivated user %s", user.username)
        raise unauthorized("Account is deactivated")
    return payload


async def get_current_user_id(payload: dict = Depends(get_current_payload)) -> int:
    """Extract user_id from the JWT Bearer token."""
    return int(payload["sub"])


def payload_roles(payload: dict) -> list[str]:
    return list(payload.get("roles") or [])


class RequireRole:
    """Dependency that lets the request through when the caller holds any of the roles."""

    def __init__(self, *roles: RoleName):
        self.roles = {role.value.lower() for role in roles}
        self.label = ", ".join(role.value for role in roles)

    async def __call__(self, payload: dict = Depends(get_current_payload)) -> dict:
        user_roles = payload_roles(payload)
        if not any(role.lower() in self.roles for role in user_roles):
            logger.warning(
                "Authorization failed for user %s. Required roles: [%s], user roles: [%s]",
                payload.get("username", "unknown"),
                self.label,
                ", ".join(user_roles),
            )
            raise forbidden(f"Access denied. Required role(s): {self.label}")
        return payload


require_admin = RequireRole(RoleName.ADMIN)
require_manager = RequireRole(RoleName.MANAGER)
require_admin_or_manager = RequireRole(RoleName.ADMIN, RoleName.MANAGER)


async def require_team_access(
    user_id: int = Path(...),
    payload: dict = Depends(get_current_payload),
    db: Session = Depends(get_db),
) -> dict:
    """Allow admins, the user themself, and managers of the user's team."""
    current_user_id = int(payload["sub"])
    roles = {role.lower() for role in payload_roles(payload)}

    if RoleName.ADMIN.value.lower() in roles or current_user_id == user_id:
        return payload

    if RoleName.MANAGER.value.lower() in roles:
        current = db.query(User).filter(User.id == current_user_id).first()
        target = db.query(User).filter(User.id == user_id).first()
        if current is not None and current.team_id is not None and target is not None \
                and current.team_id == target.team_id:
            return payload

    logger.warning("Team access denied for user %s trying to access user %s", current_user_id, user_id)
    raise forbidden("Access denied. You can only access users in your team.")
