"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from user_admin.core.config import settings
from user_admin.core.middleware import setup_middleware
from user_admin.core.rate_limiter import limiter
from user_admin.core.exceptions import UserAdminError

from user_admin.api.auth import router as auth_router
from user_admin.api.users import router as users_router
from user_admin.api.roles import router as roles_router
from user_admin.api.teams import router as teams_router
from user_admin.api.team_requests import router as team_requests_router
from user_admin.api.role_management import router as role_management_router
from user_admin.api.audit_logs import router as audit_logs_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("user_admin")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s API", settings.APP_NAME)
    yield
    logger.info("Shutting down %s API", settings.APP_NAME)


app = FastAPI(
    title="User Management System API",
    description="Users, roles, teams, team requests and audit logging",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(UserAdminError)
async def user_admin_exception_handler(request: Request, exc: UserAdminError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
    )

# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(roles_router, prefix="/api")
app.include_router(teams_router, prefix="/api")
app.include_router(team_requests_router, prefix="/api")
app.include_router(role_management_router, prefix="/api")
app.include_router(audit_logs_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health():
    """Quick health check endpoint."""
    return {"status": "ok"}
