"""Team requests API router: join requests and the manager's mailbox."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from user_admin.core.security import require_manager, require_admin_or_manager, get_current_user_id
from user_admin.db.session import get_db
from user_admin.models.team import TeamRequest
from user_admin.schemas.schemas import (
    TeamRequestCreate, TeamRequestProcess, TeamRequestOut, MessageResponse,
)
from user_admin.services.team_request_service import team_request_service

router = APIRouter(prefix="/team-requests", tags=["team-requests"])


def _request_out(request: TeamRequest) -> TeamRequestOut:
    return TeamRequestOut(
        id=request.id,
        user_id=request.user_id,
        username=request.user.username,
        user_email=request.user.email,
        team_id=request.team_id,
        team_name=request.team.name,
        message=request.message,
        status=request.status,
        requested_at=request.requested_at,
        processed_at=request.processed_at,
        processed_by=request.processed_by.username if request.processed_by else None,
        processing_notes=request.processing_notes,
    )


@router.post("/", response_model=TeamRequestOut, status_code=201)
async def create_request(
    body: TeamRequestCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Ask to join a team."""
    return _request_out(team_request_service.create_request(db, user_id, body.team_id, body.message))


@router.get("/my-requests", response_model=list[TeamRequestOut])
async def my_requests(db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return [_request_out(r) for r in team_request_service.requests_by_user(db, user_id)]


@router.get("/mailbox", response_model=list[TeamRequestOut])
async def mailbox(db: Session = Depends(get_db), payload: dict = Depends(require_manager)):
    """Pending requests for the calling manager's team."""
    return [_request_out(r) for r in team_request_service.mailbox(db, int(payload["sub"]))]


@router.post("/{request_id}/process", response_model=TeamRequestOut)
async def process_request(
    request_id: int,
    body: TeamRequestProcess,
    db: Session = Depends(get_db),
    payload: dict = Depends(require_manager),
):
    """Approve or reject a pending request."""
    request = team_request_service.process_request(
        db, request_id, int(payload["sub"]), body.approve, body.notes,
    )
    return _request_out(request)


@router.delete("/{request_id}", response_model=MessageResponse)
async def cancel_request(
    request_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id),
):
    """Withdraw your own pending request."""
    team_request_service.cancel_request(db, request_id, user_id)
    return MessageResponse(message="Request canceled successfully")


@router.get("/team/{team_id}", response_model=list[TeamRequestOut])
async def pending_for_team(
    team_id: int, db: Session = Depends(get_db), payload: dict = Depends(require_admin_or_manager),
):
    return [_request_out(r) for r in team_request_service.pending_for_team(db, team_id)]
