"""Role model for RBAC."""

import enum

from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship
from user_admin.db.base import Base


class RoleName(str, enum.Enum):
    """Operational roles the authorization rules are written against."""
    ADMIN = "Admin"
    MANAGER = "Manager"
    USER = "User"
    VIEWER = "Viewer"


class Role(Base):
    """Named permission level. The four RoleName values are seeded at startup."""
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    assignments = relationship("UserRole", back_populates="role")
