"""Rate limiting configuration for the ERP API."""

import logging
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from erp.core.config import settings
from erp.core.redis_client import get_redis_url, get_sync_redis_client

# Redis-backed limits are shared across workers; without REDIS_URL (or when
# Redis is down) each worker counts in memory.
IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)
AUTH_LIMIT = f"{settings.RATE_LIMIT_AUTH}/minute"


def _build_limiter() -> Limiter:
    redis_url = get_redis_url()
    if IS_TESTING or not redis_url:
        return Limiter(
            key_func=get_remote_address,
            storage_uri="memory://",
            default_limits=DEFAULT_LIMITS,
            enabled=not IS_TESTING,
        )

    try:
        get_sync_redis_client().ping()
        return Limiter(
            key_func=get_remote_address,
            storage_uri=redis_url,
            default_limits=DEFAULT_LIMITS,
        )
    except Exception as e:
        logging.warning(f"Redis unavailable for rate limiting, using in-memory: {e}")
        return Limiter(
            key_func=get_remote_address,
            storage_uri="memory://",
            default_limits=DEFAULT_LIMITS,
        )


limiter = _build_limiter()
