"""CORS and request-context middleware."""

import logging
import time
import uuid

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from jose import jwt
from jose.exceptions import JOSEError
from starlette.middleware.base import BaseHTTPMiddleware

from user_admin.core.config import settings

logger = logging.getLogger("user_admin")

REQUEST_ID_HEADER = "X-Request-Id"


def _caller(request: Request) -> str:
    """Username from the bearer token, for log lines only. Not a security check."""
    auth = request.headers.get("Authorization", "")
    if not auth.lower().startswith("bearer "):
        return "-"
    try:
        claims = jwt.get_unverified_claims(auth[7:])
    except JOSEError:
        return "?"
    return str(claims.get("username") or claims.get("sub") or "?")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id (reusing the client's if sent) and log one line per request."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()

        response: Response = await call_next(request)

        duration = round((time.perf_counter() - start) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time-Ms"] = str(duration)

        level = logging.WARNING if response.status_code in (401, 403) else logging.INFO
        logger.log(
            level,
            "[%s] %s %s by %s -> %s (%sms)",
            request_id,
            request.method,
            request.url.path,
            _caller(request),
            response.status_code,
            duration,
        )
        return response


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(RequestContextMiddleware)
