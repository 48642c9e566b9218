"""Redis client helpers with connection pooling."""

from __future__ import annotations

from erp.core.config import settings

REDIS_DISABLED_URL = "memory://"
DEFAULT_REDIS_CONNECT_TIMEOUT_SECONDS = 2.0
DEFAULT_REDIS_SOCKET_TIMEOUT_SECONDS = 2.0
DEFAULT_REDIS_HEALTH_CHECK_SECONDS = 30

_sync_client = None


def get_redis_url() -> str | None:
    """Configured Redis URL, or None when Redis is disabled."""
    url = (settings.REDIS_URL or "").strip()
    if not url or url.lower() == REDIS_DISABLED_URL:
        return None
    return url


def get_sync_redis_client():
    """Shared pooled client for request-path calls; every call is time-bounded."""
    url = get_redis_url()
    if not url:
        return None

    global _sync_client
    if _sync_client is None:
        import redis

        pool = redis.ConnectionPool.from_url(
            url,
            max_connections=max(settings.REDIS_MAX_CONNECTIONS, 1),
            socket_connect_timeout=DEFAULT_REDIS_CONNECT_TIMEOUT_SECONDS,
            socket_timeout=DEFAULT_REDIS_SOCKET_TIMEOUT_SECONDS,
            health_check_interval=DEFAULT_REDIS_HEALTH_CHECK_SECONDS,
            retry_on_timeout=True,
        )
        _sync_client = redis.Redis(connection_pool=pool)
    return _sync_client


def get_async_pubsub_client():
    """
    Dedicated async client for long-lived subscriptions.

    No read timeout: a subscriber waits indefinitely between messages. Dead
    connections are caught by the health check instead.
    """
    url = get_redis_url()
    if not url:
        return None

    import redis.asyncio as redis

    return redis.Redis.from_url(
        url,
        socket_connect_timeout=DEFAULT_REDIS_CONNECT_TIMEOUT_SECONDS,
        health_check_interval=DEFAULT_REDIS_HEALTH_CHECK_SECONDS,
    )


def reset_clients() -> None:
    """Drop the cached client (settings changed, or between tests)."""
    global _sync_client
    if _sync_client is not None:
        _sync_client.close()
    _sync_client = None
