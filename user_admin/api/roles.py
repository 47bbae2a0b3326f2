"""Roles API router."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from user_admin.core.security import require_admin, get_current_user_id
from user_admin.db.session import get_db
from user_admin.schemas.schemas import RoleOut, RoleCreate, RoleUpdate, MessageResponse
from user_admin.services.role_service import role_service

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("/", response_model=list[RoleOut])
async def list_roles(db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return [RoleOut.model_validate(r) for r in role_service.list_roles(db)]


@router.get("/by-name/{name}", response_model=RoleOut)
async def get_role_by_name(
    name: str, db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id),
):
    return RoleOut.model_validate(role_service.get_role_by_name(db, name))


@router.get("/user/{target_user_id}", response_model=list[RoleOut])
async def get_roles_for_user(
    target_user_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id),
):
    return [RoleOut.model_validate(r) for r in role_service.roles_for_user(db, target_user_id)]


@router.get("/{role_id}", response_model=RoleOut)
async def get_role(
    role_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id),
):
    return RoleOut.model_validate(role_service.get_role(db, role_id))


@router.post("/", response_model=RoleOut, status_code=201)
async def create_role(
    body: RoleCreate, db: Session = Depends(get_db), payload: dict = Depends(require_admin),
):
    """Create a role (admin only)."""
    return RoleOut.model_validate(role_service.create_role(db, body.name, body.description))


@router.put("/{role_id}", response_model=RoleOut)
async def update_role(
    role_id: int,
    body: RoleUpdate,
    db: Session = Depends(get_db),
    payload: dict = Depends(require_admin),
):
    return RoleOut.model_validate(role_service.update_role(db, role_id, body.name, body.description))


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: int, db: Session = Depends(get_db), payload: dict = Depends(require_admin),
):
    """Delete a role nobody holds (admin only)."""
    role_service.delete_role(db, role_id)
    return MessageResponse(message="Role deleted successfully")
