"""
WebSocket router for real-time claim events.

Provides a WebSocket endpoint that:
1. Authenticates users via session token (query param or cookie)
2. Maintains persistent connections
3. Receives every claim/lead event published by the event notifier
"""

from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from erp.core.deps import COOKIE_NAME
from erp.core.exceptions import UnauthenticatedError
from erp.core.websocket import manager
from erp.db.session import SessionLocal
from erp.services import identity_service

router = APIRouter(prefix="/ws", tags=["WebSocket"])


def _authenticate(token: str | None) -> UUID | None:
    """Resolve a token to an active user id, or None."""
    if not token:
        return None
    db = SessionLocal()
    try:
        return identity_service.resolve_caller(db, token).user_id
    except UnauthenticatedError:
        return None
    finally:
        db.close()


@router.websocket("/events")
async def websocket_events(
    websocket: WebSocket,
    token: str | None = Query(None),
):
    """
    WebSocket endpoint for claim and lead events.

    Authenticates via:
    1. Session token in query parameter (?token=...)
    2. Or session cookie (for browser clients)

    Once connected, the server pushes messages of type 'claim_event'.
    Clients may send "ping" to receive "pong".
    """
    user_id = _authenticate(token) or _authenticate(websocket.cookies.get(COOKIE_NAME))
    if not user_id:
        await websocket.close(code=4001, reason="Authentication required")
        return

    await manager.connect(websocket, user_id)

    try:
        while True:
            try:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text("pong")
            except WebSocketDisconnect:
                break
    finally:
        await manager.disconnect(websocket, user_id)
