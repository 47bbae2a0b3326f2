"""Team and TeamRequest models."""

import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, Index, func
from sqlalchemy.orm import relationship
from user_admin.db.base import Base


class TeamRequestStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class Team(Base):
    """Named group of users. At most one member holds the Manager role."""
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=False, default="")
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    members = relationship("User", back_populates="team", lazy="selectin")
    requests = relationship("TeamRequest", back_populates="team", lazy="selectin")


class TeamRequest(Base):
    """A user's request to join a team, adjudicated once by the team's manager."""
    __tablename__ = "team_requests"
    __table_args__ = (
        Index("ix_team_requests_user_team_status", "user_id", "team_id", "status"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    message = Column(Text, nullable=False, default="")
    status = Column(
        Enum(TeamRequestStatus, values_callable=lambda e: [m.value for m in e]),
        default=TeamRequestStatus.PENDING,
        nullable=False,
    )
    requested_at = Column(DateTime, nullable=False, index=True)
    processed_at = Column(DateTime, nullable=True)
    processed_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    processing_notes = Column(Text, nullable=True)

    user = relationship("User", foreign_keys=[user_id], lazy="joined")
    team = relationship("Team", back_populates="requests", lazy="joined")
    processed_by = relationship("User", foreign_keys=[processed_by_user_id], lazy="joined")
