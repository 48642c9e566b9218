"""Event notifier: fire-and-forget broadcast of domain events.

Called only after the originating transaction has committed. Delivery is
best effort: failures are logged and never propagate to the mutation that
triggered them.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from erp.core.async_utils import run_async
from erp.core.event_relay import wrap
from erp.core.redis_client import get_sync_redis_client
from erp.core.websocket import EVENTS_CHANNEL, manager

logger = logging.getLogger(__name__)

PUBLISH_TIMEOUT_SECONDS = 2.0


def build_message(event: str, payload: dict[str, Any]) -> dict[str, Any]:
    """Wire shape pushed to WebSocket clients and the Redis channel."""
    return {"type": "claim_event", "event": event, "payload": payload}


def publish(event: Enum | str, payload: dict[str, Any]) -> None:
    """Broadcast an event to connected clients and, if configured, other workers."""
    event_name = event.value if isinstance(event, Enum) else event
    message = build_message(event_name, _jsonable(payload))

    _publish_local(message)
    _publish_redis(message)


def _publish_local(message: dict[str, Any]) -> None:
    if not manager.get_total_connections():
        return
    try:
        run_async(manager.broadcast(message), timeout=PUBLISH_TIMEOUT_SECONDS)
    except Exception:
        logger.warning("Local event broadcast failed: %s", message["event"], exc_info=True)


def _publish_redis(message: dict[str, Any]) -> None:
    try:
        client = get_sync_redis_client()
        if client is None:
            return
        client.publish(EVENTS_CHANNEL, wrap(message))
    except Exception:
        logger.warning("Failed to publish event to Redis: %s", message["event"], exc_info=True)


def _jsonable(payload: dict[str, Any]) -> dict[str, Any]:
    """Stringify UUIDs (and other non-JSON scalars) so payloads serialize anywhere."""
    result: dict[str, Any] = {}
    for key, value in payload.items():
        if value is None or isinstance(value, (str, int, float, bool)):
            result[key] = value
        else:
            result[key] = str(value)
    return result
