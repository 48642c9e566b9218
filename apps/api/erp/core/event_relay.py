"""Cross-worker event relay.

Each API worker publishes events to the ``erp:events`` Redis channel wrapped
as ``{"origin": <worker id>, "message": {...}}``. The relay subscribes to the
channel and rebroadcasts messages from other workers to this worker's
WebSocket connections; its own messages were already delivered locally.
"""

import asyncio
import json
import logging
import uuid

from erp.core.redis_client import get_async_pubsub_client
from erp.core.websocket import EVENTS_CHANNEL, manager

logger = logging.getLogger(__name__)

WORKER_ID = uuid.uuid4().hex
RECONNECT_DELAY_SECONDS = 5.0


def wrap(message: dict) -> str:
    return json.dumps({"origin": WORKER_ID, "message": message}, default=str)


def unwrap(raw: bytes | str) -> dict | None:
    """Message from another worker, or None for our own or malformed data."""
    try:
        envelope = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Dropping malformed event on %s", EVENTS_CHANNEL)
        return None
    if not isinstance(envelope, dict) or envelope.get("origin") == WORKER_ID:
        return None
    message = envelope.get("message")
    return message if isinstance(message, dict) else None


async def run_relay() -> None:
    """Subscribe forever; reconnects after Redis errors. Cancel to stop."""
    while True:
        client = None
        pubsub = None
        try:
            client = get_async_pubsub_client()
            if client is None:
                logger.info("Redis disabled; event relay not started")
                return
            pubsub = client.pubsub()
            await pubsub.subscribe(EVENTS_CHANNEL)
            logger.info("Event relay subscribed to %s", EVENTS_CHANNEL)
            async for item in pubsub.listen():
                if item.get("type") != "message":
                    continue
                message = unwrap(item.get("data"))
                if message is not None and manager.get_total_connections():
                    await manager.broadcast(message)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("Event relay lost Redis connection; retrying", exc_info=True)
            await asyncio.sleep(RECONNECT_DELAY_SECONDS)
        finally:
            if pubsub is not None:
                await pubsub.aclose()
            if client is not None:
                await client.aclose()
