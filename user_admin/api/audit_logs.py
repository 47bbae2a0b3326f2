"""Audit log API router."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from user_admin.core.security import require_admin, get_current_user_id
from user_admin.db.session import get_db
from user_admin.schemas.schemas import AuditLogOut, LogActionRequest, MessageResponse
from user_admin.services.audit_service import audit_service

router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])


@router.get("/recent", response_model=list[AuditLogOut])
async def recent_logs(
    count: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    payload: dict = Depends(require_admin),
):
    """Most recent audit entries (admin only)."""
    return [AuditLogOut.model_validate(log) for log in audit_service.recent(db, count)]


@router.get("/user/{user_id}", response_model=list[AuditLogOut])
async def logs_for_user(
    user_id: int, db: Session = Depends(get_db), payload: dict = Depends(require_admin),
):
    return [AuditLogOut.model_validate(log) for log in audit_service.by_user(db, user_id)]


@router.get("/action/{action}", response_model=list[AuditLogOut])
async def logs_for_action(
    action: str, db: Session = Depends(get_db), payload: dict = Depends(require_admin),
):
    return [AuditLogOut.model_validate(log) for log in audit_service.by_action(db, action)]


@router.post("/log", response_model=MessageResponse)
async def log_action(
    body: LogActionRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Explicitly record an action the services do not audit themselves."""
    audit_service.log_action(db, body.user_id, body.action, body.metadata)
    return MessageResponse(message="Action logged successfully")
