"""Users API router."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from user_admin.core.exceptions import forbidden
from user_admin.core.security import require_admin, require_team_access, get_current_user_id
from user_admin.db.session import get_db
from user_admin.schemas.schemas import (
    UserOut, UserCreateRequest, UserUpdateRequest, ChangePasswordRequest, MessageResponse,
)
from user_admin.services.user_service import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/", response_model=list[UserOut])
async def list_users(db: Session = Depends(get_db), payload: dict = Depends(require_admin)):
    """List all users (admin only)."""
    return [UserOut.model_validate(u) for u in user_service.list_users(db)]


@router.get("/active", response_model=list[UserOut])
async def list_active_users(db: Session = Depends(get_db), payload: dict = Depends(require_admin)):
    """List active users (admin only)."""
    return [UserOut.model_validate(u) for u in user_service.list_active_users(db)]


@router.get("/by-username/{username}", response_model=UserOut)
async def get_user_by_username(
    username: str, db: Session = Depends(get_db), payload: dict = Depends(require_admin),
):
    return UserOut.model_validate(user_service.get_user_by_username(db, username))


@router.get("/by-email/{email}", response_model=UserOut)
async def get_user_by_email(
    email: str, db: Session = Depends(get_db), payload: dict = Depends(require_admin),
):
    return UserOut.model_validate(user_service.get_user_by_email(db, email))


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: int, db: Session = Depends(get_db), payload: dict = Depends(require_team_access),
):
    """Get a user (admin, the user themself, or their team's manager)."""
    return UserOut.model_validate(user_service.get_user(db, user_id))


@router.post("/", response_model=UserOut, status_code=201)
async def create_user(
    body: UserCreateRequest,
    db: Session = Depends(get_db),
    payload: dict = Depends(require_admin),
):
    """Create a user (admin only)."""
    user = user_service.create_user(
        db, body.username, body.email, body.password,
        is_active=body.is_active, role_id=body.role_id, actor_id=int(payload["sub"]),
    )
    return UserOut.model_validate(user)


@router.put("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: int,
    body: UserUpdateRequest,
    db: Session = Depends(get_db),
    payload: dict = Depends(require_admin),
):
    """Update a user's identity, status or role (admin only)."""
    user = user_service.update_user(
        db, user_id, body.username, body.email, body.is_active, role_id=body.role_id,
    )
    return UserOut.model_validate(user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int, db: Session = Depends(get_db), payload: dict = Depends(require_admin),
):
    user_service.delete_user(db, user_id)
    return MessageResponse(message="User deleted successfully")


@router.post("/{user_id}/change-password", response_model=MessageResponse)
async def change_password(
    user_id: int,
    body: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """Change your own password."""
    if current_user_id != user_id:
        raise forbidden("You can only change your own password")
    user_service.change_password(db, user_id, body.current_password, body.new_password)
    return MessageResponse(message="Password changed successfully")


@router.post("/{user_id}/activate", response_model=MessageResponse)
async def activate_user(
    user_id: int, db: Session = Depends(get_db), payload: dict = Depends(require_admin),
):
    changed = user_service.set_active(db, user_id, True)
    return MessageResponse(message="User activated successfully" if changed else "User is already active")


@router.post("/{user_id}/deactivate", response_model=MessageResponse)
async def deactivate_user(
    user_id: int, db: Session = Depends(get_db), payload: dict = Depends(require_admin),
):
    changed = user_service.set_active(db, user_id, False)
    return MessageResponse(message="User deactivated successfully" if changed else "User is already inactive")
