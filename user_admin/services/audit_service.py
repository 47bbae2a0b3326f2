"""Audit service: append-only audit trail for all mutations."""

import logging
from datetime import datetime, timezone
from typing import Optional, List

from sqlalchemy.orm import Session

from user_admin.db.session import unit_of_work
from user_admin.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Records immutable audit log entries for system events."""

    @staticmethod
    def log(
        db: Session,
        user_id: Optional[int],
        action: str,
        metadata: Optional[str] = None,
    ) -> AuditLog:
        """Add an audit record to the caller's unit of work.

        Args:
            action: e.g. "User Role Changed", "Team Request Approved"

        The entry is committed together with the mutation it describes.
        """
        entry = AuditLog(
            user_id=user_id,
            action=action,
            details=metadata,
            timestamp=datetime.now(timezone.utc),
        )
        db.add(entry)
        return entry

    @staticmethod
    def log_action(
        db: Session,
        user_id: Optional[int],
        action: str,
        metadata: Optional[str] = None,
    ) -> AuditLog:
        """Record an action not already covered by a service's own audit emission."""
        with unit_of_work(db, "logging action"):
            entry = AuditService.log(db, user_id, action, metadata)
        logger.info("Logged action %r for user %s", action, user_id)
        return entry

    @staticmethod
    def recent(db: Session, count: int = 100) -> List[AuditLog]:
        """Most recent audit entries, newest first."""
        return (
            db.query(AuditLog)
            .order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
            .limit(count)
            .all()
        )

    @staticmethod
    def by_user(db: Session, user_id: int) -> List[AuditLog]:
        return (
            db.query(AuditLog)
            .filter(AuditLog.user_id == user_id)
            .order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
            .all()
        )

    @staticmethod
    def by_action(db: Session, action: str) -> List[AuditLog]:
        return (
            db.query(AuditLog)
            .filter(AuditLog.action == action)
            .order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
            .all()
        )


audit_service = AuditService()
