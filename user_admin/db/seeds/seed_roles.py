"""Seed default roles into the database."""

from sqlalchemy.orm import Session
from user_admin.models.role import Role, RoleName

DEFAULT_ROLES = [
    {"name": RoleName.ADMIN.value, "description": "Full access: users, roles, teams and manager placement"},
    {"name": RoleName.MANAGER.value, "description": "Runs one team: member roles and join requests"},
    {"name": RoleName.USER.value, "description": "Regular user"},
    {"name": RoleName.VIEWER.value, "description": "Read-only user"},
]


def seed_roles(db: Session) -> int:
    """Insert default roles if they don't already exist. Returns how many were added."""
    added = 0
    for role_data in DEFAULT_ROLES:
        existing = db.query(Role).filter(Role.name == role_data["name"]).first()
        if not existing:
            db.add(Role(**role_data))
            added += 1

    db.commit()
    print(f"✅ Seeded {added} roles")
    return added
