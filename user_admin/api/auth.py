"""Auth API router: login, register, me, logout."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from user_admin.core.config import settings
from user_admin.core.rate_limiter import limiter
from user_admin.core.security import get_current_payload, get_current_user_id
from user_admin.db.session import get_db
from user_admin.schemas.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, UserOut, MessageResponse,
)
from user_admin.services.auth_service import auth_service
from user_admin.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate and return a JWT access token."""
    result = auth_service.authenticate(db, body.username, body.password)
    return TokenResponse(
        access_token=result["access_token"],
        token_type=result["token_type"],
        expires_at=result["expires_at"],
        user=UserOut.model_validate(result["user"]),
    )


@router.post("/register", response_model=UserOut, status_code=201)
async def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new user with the User role and no team."""
    user = auth_service.register(db, body.username, body.email, body.password)
    return UserOut.model_validate(user)


@router.get("/me", response_model=UserOut)
async def get_me(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Get current user profile."""
    return UserOut.model_validate(user_service.get_user(db, user_id))


@router.post("/logout", response_model=MessageResponse)
async def logout(payload: dict = Depends(get_current_payload)):
    """Tokens are stateless; the client discards its token."""
    logger.info("Logout for user: %s", payload.get("username"))
    return MessageResponse(message="Logged out successfully. Please discard your token.")
