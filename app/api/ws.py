"""
Real-time event rooms over WebSocket
"""

import json
import logging
from typing import Dict, Set

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.core.errors import AppError
from app.services.event_store import EventStore
from app.services.repositories import get_repository
from app.utils.security import resolve_user

logger = logging.getLogger(__name__)

# Close code sent to callers who are not participants of the event
CLOSE_NOT_A_PARTICIPANT = 4004

class WebSocketManager:
    """One room of open sockets per event id"""

    def __init__(self):
        self.rooms: Dict[str, Set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, event_id: str):
        await websocket.accept()
        self.rooms.setdefault(event_id, set()).add(websocket)
        logger.info(f"WebSocket joined event {event_id} ({len(self.rooms[event_id])} open)")

    def disconnect(self, websocket: WebSocket, event_id: str):
        room = self.rooms.get(event_id)
        if room is None:
            return
        room.discard(websocket)
        if not room:
            del self.rooms[event_id]

    def get_connection_count(self, event_id: str) -> int:
        return len(self.rooms.get(event_id, ()))

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        try:
            await websocket.send_text(json.dumps(message))
        except Exception as e:
            logger.error(f"Error sending to websocket: {e}")

    async def broadcast_to_event(self, event_id: str, message: dict):
        """Send to every socket in the room; sockets that fail are dropped"""
        payload = json.dumps(message)
        for websocket in list(self.rooms.get(event_id, ())):
            try:
                await websocket.send_text(payload)
            except Exception as e:
                logger.warning(f"Dropping websocket of event {event_id}: {e}")
                self.disconnect(websocket, event_id)

# Global WebSocket manager instance
websocket_manager = WebSocketManager()

router = APIRouter()

@router.websocket("/events/{event_id}")
async def websocket_endpoint(
    websocket: WebSocket,
    event_id: str,
    token: str = "",
    db: Session = Depends(get_db)
):
    """Room of an event; the bearer token goes in the ``token`` query parameter"""
    repo = get_repository(db)
    event = None
    try:
        user = resolve_user(token, repo) if token else None
        if user:
            event = EventStore(repo).get_event_for_member(event_id, user.id)
            if user.id not in event.participants:
                event = None
    except AppError as e:
        logger.info(f"WebSocket rejected for event {event_id}: {e.message}")
        event = None

    if event is None:
        await websocket.close(code=CLOSE_NOT_A_PARTICIPANT, reason="Not a participant of this event")
        return

    await websocket_manager.connect(websocket, event_id)
    try:
        await websocket_manager.send_personal_message({
            "type": "connection",
            "message": f"Connected to event: {event.title}",
            "event_id": event_id,
            "status": event.status,
            "connection_count": websocket_manager.get_connection_count(event_id)
        }, websocket)

        while True:
            data = await websocket.receive_text()
            try:
                client_message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Ignoring non-JSON websocket message for event {event_id}")
                continue

            if isinstance(client_message, dict) and client_message.get("type") == "ping":
                await websocket_manager.send_personal_message(
                    {"type": "pong", "timestamp": client_message.get("timestamp")}, websocket
                )
    except WebSocketDisconnect:
        pass
    finally:
        websocket_manager.disconnect(websocket, event_id)
