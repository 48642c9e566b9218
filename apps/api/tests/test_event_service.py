import asyncio
import json

import pytest
import redis

from erp.core import event_relay, redis_client
from erp.core.config import settings
from erp.core.websocket import ConnectionManager, manager
from erp.services import event_service


def test_build_message_shape():
    assert event_service.build_message("claim_created", {"claim_id": "c1"}) == {
        "type": "claim_event",
        "event": "claim_created",
        "payload": {"claim_id": "c1"},
    }


def test_redis_failure_is_swallowed(monkeypatch):
    def broken_client():
        raise redis.ConnectionError("unreachable")

    monkeypatch.setattr(event_service, "get_sync_redis_client", broken_client)

    event_service.publish("claim_created", {"claim_id": "c1"})


def test_timed_out_redis_publish_still_returns(monkeypatch):
    attempts = []

    class StalledRedis:
        def publish(self, channel, data):
            attempts.append(channel)
            raise redis.TimeoutError("Timeout reading from socket")

    monkeypatch.setattr(event_service, "get_sync_redis_client", lambda: StalledRedis())

    event_service.publish("claim_status_changed", {"claim_id": "c1", "status": "in_review"})

    assert attempts == ["erp:events"]


def test_redis_publish_wraps_message_with_origin(monkeypatch):
    published = []

    class FakeRedis:
        def publish(self, channel, data):
            published.append((channel, data))

    monkeypatch.setattr(event_service, "get_sync_redis_client", lambda: FakeRedis())

    event_service.publish("claim_assigned", {"claim_id": "c1", "assigned_to": None})

    [(channel, data)] = published
    assert channel == "erp:events"
    envelope = json.loads(data)
    assert envelope["origin"] == event_relay.WORKER_ID
    assert envelope["message"]["event"] == "claim_assigned"


@pytest.mark.parametrize("url", ["", "memory://", " MEMORY:// "])
def test_redis_disabled_urls(monkeypatch, url):
    monkeypatch.setattr(settings, "REDIS_URL", url)

    assert redis_client.get_redis_url() is None
    assert redis_client.get_sync_redis_client() is None
    assert redis_client.get_async_pubsub_client() is None


@pytest.mark.asyncio
async def test_relay_exits_when_redis_disabled(monkeypatch):
    monkeypatch.setattr(settings, "REDIS_URL", "memory://")

    await asyncio.wait_for(event_relay.run_relay(), timeout=1)


def test_local_broadcast_failure_is_swallowed(monkeypatch):
    async def broken_broadcast(message):
        raise RuntimeError("socket gone")

    monkeypatch.setattr(manager, "get_total_connections", lambda: 1)
    monkeypatch.setattr(manager, "broadcast", broken_broadcast)

    event_service.publish("claim_created", {"claim_id": "c1"})


def test_relay_ignores_own_messages():
    own = event_relay.wrap({"event": "claim_created"})
    foreign = json.dumps({"origin": "other-worker", "message": {"event": "claim_created"}})

    assert event_relay.unwrap(own) is None
    assert event_relay.unwrap(foreign) == {"event": "claim_created"}
    assert event_relay.unwrap("not json") is None


class FakeWebSocket:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[str] = []
        self.accepted = False

    async def accept(self):
        self.accepted = True

    async def send_text(self, data: str):
        if self.fail:
            raise RuntimeError("closed")
        self.sent.append(data)


@pytest.mark.asyncio
async def test_connection_manager_broadcasts_and_drops_dead_sockets():
    import uuid

    cm = ConnectionManager()
    alive, dead = FakeWebSocket(), FakeWebSocket(fail=True)
    await cm.connect(alive, uuid.uuid4())
    await cm.connect(dead, uuid.uuid4())

    await cm.broadcast({"type": "claim_event", "event": "claim_created", "payload": {}})

    assert alive.accepted
    assert json.loads(alive.sent[0])["event"] == "claim_created"
    assert cm.get_total_connections() == 1
