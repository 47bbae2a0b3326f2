"""User model."""

from typing import Optional

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from user_admin.db.base import Base
from user_admin.models.role import RoleName


class User(Base):
    """Platform user with one operational role and an optional team."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=True, index=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    team = relationship("Team", back_populates="members")
    role_assignment = relationship(
        "UserRole",
        back_populates="user",
        uselist=False,
        lazy="joined",
        cascade="all, delete-orphan",
    )

    @property
    def role_name(self) -> Optional[str]:
        if self.role_assignment is None or self.role_assignment.role is None:
            return None
        return self.role_assignment.role.name

    def has_role(self, role: RoleName) -> bool:
        return self.role_name == role.value
