"""UserRole model: the single operational role held by a user."""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from user_admin.db.base import Base


class UserRole(Base):
    """Role assignment. ``user_id`` is the primary key, so a user holds exactly one role."""
    __tablename__ = "user_roles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False, index=True)
    assigned_at = Column(DateTime, server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="role_assignment")
    role = relationship("Role", back_populates="assignments", lazy="joined")
