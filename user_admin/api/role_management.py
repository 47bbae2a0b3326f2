"""Role management API router: promotion, demotion and role changes."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from user_admin.core.security import require_admin, require_admin_or_manager
from user_admin.db.session import get_db
from user_admin.schemas.schemas import (
    PromoteToManagerRequest, ChangeRoleRequest, AvailableRolesOut, MessageResponse,
)
from user_admin.services.role_management_service import role_management_service

router = APIRouter(prefix="/role-management", tags=["role-management"])


@router.post("/promote-to-manager", response_model=MessageResponse)
async def promote_to_manager(
    body: PromoteToManagerRequest,
    db: Session = Depends(get_db),
    payload: dict = Depends(require_admin),
):
    role_management_service.promote_to_manager(db, int(payload["sub"]), body.user_id, body.team_id)
    return MessageResponse(message="User promoted to manager successfully")


@router.post("/demote-manager/{manager_id}", response_model=MessageResponse)
async def demote_manager(
    manager_id: int, db: Session = Depends(get_db), payload: dict = Depends(require_admin),
):
    role_management_service.demote_manager(db, int(payload["sub"]), manager_id)
    return MessageResponse(message="Manager demoted successfully")


@router.post("/change-role/{user_id}", response_model=MessageResponse)
async def change_role(
    user_id: int,
    body: ChangeRoleRequest,
    db: Session = Depends(get_db),
    payload: dict = Depends(require_admin_or_manager),
):
    role_management_service.change_user_role(db, int(payload["sub"]), user_id, body.new_role_name)
    return MessageResponse(message=f"User role changed to {body.new_role_name} successfully")


@router.get("/available-roles/{user_id}", response_model=AvailableRolesOut)
async def available_roles(
    user_id: int, db: Session = Depends(get_db), payload: dict = Depends(require_admin_or_manager),
):
    roles = role_management_service.available_roles_for_user(db, int(payload["sub"]), user_id)
    return AvailableRolesOut(user_id=user_id, roles=roles)
