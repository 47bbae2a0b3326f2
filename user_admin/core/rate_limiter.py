"""Request rate limiting (slowapi), keyed on the client address."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from user_admin.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
