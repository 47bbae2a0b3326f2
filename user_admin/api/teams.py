"""Teams API router."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from user_admin.core.security import require_admin, require_manager, get_current_user_id
from user_admin.db.session import get_db
from user_admin.models.team import Team
from user_admin.schemas.schemas import (
    TeamCreate, TeamUpdate, TeamOut, TeamSummaryOut, TeamMemberOut, MessageResponse,
)
from user_admin.services.team_service import team_service

router = APIRouter(prefix="/teams", tags=["teams"])


def _team_out(db: Session, team: Team) -> TeamOut:
    return TeamOut(
        **team_service.summarize(db, team),
        created_at=team.created_at,
        members=[TeamMemberOut.model_validate(u) for u in team.members],
    )


@router.get("/", response_model=list[TeamSummaryOut])
async def list_teams(db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    """List all teams with manager and member count."""
    return [TeamSummaryOut(**t) for t in team_service.list_teams(db)]


@router.get("/managed", response_model=list[TeamSummaryOut])
async def list_managed_teams(
    db: Session = Depends(get_db), payload: dict = Depends(require_manager),
):
    """The team the calling manager runs."""
    return [TeamSummaryOut(**t) for t in team_service.teams_for_manager(db, int(payload["sub"]))]


@router.get("/by-name/{name}", response_model=TeamOut)
async def get_team_by_name(
    name: str, db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id),
):
    return _team_out(db, team_service.get_team_by_name(db, name))


@router.get("/{team_id}", response_model=TeamOut)
async def get_team(
    team_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id),
):
    return _team_out(db, team_service.get_team(db, team_id))


@router.post("/", response_model=TeamOut, status_code=201)
async def create_team(
    body: TeamCreate, db: Session = Depends(get_db), payload: dict = Depends(require_admin),
):
    """Create a new team (admin only)."""
    return _team_out(db, team_service.create_team(db, body.name, body.description))


@router.put("/{team_id}", response_model=TeamOut)
async def update_team(
    team_id: int,
    body: TeamUpdate,
    db: Session = Depends(get_db),
    payload: dict = Depends(require_admin),
):
    return _team_out(db, team_service.update_team(db, team_id, body.name, body.description))


@router.delete("/{team_id}", response_model=MessageResponse)
async def delete_team(
    team_id: int, db: Session = Depends(get_db), payload: dict = Depends(require_admin),
):
    """Delete a team with no members (admin only)."""
    team_service.delete_team(db, team_id)
    return MessageResponse(message="Team deleted successfully")


@router.post("/{team_id}/assign-manager/{user_id}", response_model=MessageResponse)
async def assign_manager(
    team_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    payload: dict = Depends(require_admin),
):
    team_service.assign_manager(db, team_id, user_id, acting_user_id=int(payload["sub"]))
    return MessageResponse(message="Manager assigned successfully")


@router.delete("/{team_id}/remove-manager", response_model=MessageResponse)
async def remove_manager(
    team_id: int, db: Session = Depends(get_db), payload: dict = Depends(require_admin),
):
    team_service.remove_manager(db, team_id, acting_user_id=int(payload["sub"]))
    return MessageResponse(message="Manager removed successfully")
