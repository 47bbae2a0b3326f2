"""Seed the admin user from env vars."""

from typing import Optional

from sqlalchemy.orm import Session
from user_admin.core.config import settings
from user_admin.core.security import hash_password
from user_admin.models.role import Role, RoleName
from user_admin.models.user import User
from user_admin.models.user_role import UserRole


def seed_admin(db: Session) -> Optional[User]:
    """Create the admin user if not already present."""
    admin_role = db.query(Role).filter(Role.name == RoleName.ADMIN.value).first()
    if not admin_role:
        print("⚠️  Admin role not found. Run seed_roles first.")
        return None

    existing = db.query(User).filter(User.username == settings.ADMIN_USERNAME).first()
    if existing:
        print(f"ℹ️  Admin '{settings.ADMIN_USERNAME}' already exists, skipping.")
        return existing

    admin = User(
        username=settings.ADMIN_USERNAME,
        email=settings.ADMIN_EMAIL,
        hashed_password=hash_password(settings.ADMIN_PASSWORD),
        is_active=True,
    )
    admin.role_assignment = UserRole(role=admin_role)
    db.add(admin)
    db.commit()
    print(f"✅ Created admin: {settings.ADMIN_USERNAME}")
    return admin
