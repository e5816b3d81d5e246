"""Per-client request limits.

Every route is held to :attr:`Settings.rate_limit_default` through
``SlowAPIMiddleware``. The authentication routes that can be brute-forced or
used to flood mailboxes carry tighter limits of their own.
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from inkwell.core.settings import settings

REGISTER_LIMIT = "5/15 minutes"
LOGIN_LIMIT = "10/15 minutes"
# Shared between forgot-password and reset-password.
PASSWORD_RESET_LIMIT = "3/hour"
PASSWORD_RESET_SCOPE = "password-reset"

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[lambda: settings.rate_limit_default],
    storage_uri=settings.redis_url or "memory://",
    in_memory_fallback_enabled=bool(settings.redis_url),
    enabled=settings.rate_limit_enabled,
)
