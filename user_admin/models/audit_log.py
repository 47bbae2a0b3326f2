"""Audit log model: append-only."""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from user_admin.db.base import Base


class AuditLog(Base):
    """Immutable audit trail for all system mutations.

    This table is APPEND-ONLY: no UPDATE or DELETE operations should ever
    be performed on it (enforced at application level). The only exception
    is clearing ``user_id`` when the owning user is deleted.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(100), nullable=False, index=True)  # e.g. "User Role Changed"
    details = Column("metadata", Text, nullable=True)
    timestamp = Column(DateTime, nullable=False, index=True)
