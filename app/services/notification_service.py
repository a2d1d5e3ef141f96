"""
Notification dispatch: persist the record, then deliver best-effort
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.api.ws import WebSocketManager
from app.core.errors import BackendUnavailable, PermissionDenied
from app.schemas import Event, Notification, Photo
from app.services.event_store import EventStore
from app.services.push_service import PushSender
from app.services.secrets_service import new_id

logger = logging.getLogger(__name__)


def course_ready_text(course_name: str, course_type: str) -> Dict[str, str]:
    """Title and message for a course-ready notification"""
    return {
        "title": f"{course_name} is ready!",
        "message": f'The {course_type.lower()} course "{course_name}" is now being served.',
    }


class NotificationDispatcher:
    """Writes notification records and fans them out to participants.

    The stored record is the source of truth. WebSocket and push delivery are
    advisory: failures are logged and never undo the record.
    """

    def __init__(self, store: EventStore, websocket_manager: WebSocketManager, push_sender: PushSender):
        self.store = store
        self.websocket_manager = websocket_manager
        self.push_sender = push_sender

    async def send_event_notification(
        self,
        event: Event,
        type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        exclude_user_id: Optional[str] = None,
    ) -> Notification:
        notification = self.store.repo.add_notification({
            "id": new_id(),
            "event_id": event.id,
            "type": type,
            "title": title,
            "message": message,
            "data": data or {},
            "sent_at": datetime.utcnow(),
        })
        logger.info(f"Notification {notification.id} ({type}) stored for event {event.id}")

        recipients = [user_id for user_id in event.participants if user_id != exclude_user_id]
        await self._broadcast(notification)
        await self._push(notification, recipients)
        return notification

    async def _broadcast(self, notification: Notification) -> None:
        try:
            await self.websocket_manager.broadcast_to_event(notification.event_id, {
                "type": "notification",
                "notification": notification.model_dump(mode="json"),
            })
        except Exception as e:
            logger.error(f"Error broadcasting notification {notification.id}: {e}")

    async def _push(self, notification: Notification, recipients: List[str]) -> None:
        try:
            tokens = self.store.repo.get_push_tokens(recipients)
        except BackendUnavailable as e:
            logger.error(f"Could not load push tokens for notification {notification.id}: {e}")
            return

        payload = {"event_id": notification.event_id, "type": notification.type, **(notification.data or {})}
        for user_id, token in tokens.items():
            try:
                await asyncio.to_thread(
                    self.push_sender.send, token, notification.title, notification.message, payload
                )
            except Exception as e:
                logger.error(f"Push delivery to {user_id} failed for notification {notification.id}: {e}")

    async def notify_course_served(self, event_id: str, course_id: str) -> Notification:
        """Announce that a course is being served"""
        course_event_id, course = self.store.get_course(course_id)
        event = self.store.get_event_by_id(course_event_id or event_id)
        text = course_ready_text(course.name, course.type)
        return await self.send_event_notification(
            event,
            "course_ready",
            text["title"],
            text["message"],
            data={"course_id": course.id, "course_name": course.name, "course_type": course.type},
        )

    async def notify_photo_uploaded(self, event: Event, photo: Photo) -> Notification:
        uploader = photo.uploader.name if photo.uploader else "A guest"
        return await self.send_event_notification(
            event,
            "photo_uploaded",
            "New photo",
            f"{uploader} added a photo to {event.title}.",
            data={"photo_id": photo.id},
            exclude_user_id=photo.uploaded_by,
        )

    async def post_event_update(self, event_id: str, caller_id: str, title: str, message: str) -> Notification:
        """Organizer-authored update sent to every participant"""
        event = self.store.get_event_by_id(event_id)
        if caller_id != event.organizer_id:
            raise PermissionDenied()
        return await self.send_event_notification(event, "event_update", title, message)

    def list_notifications(self, event_id: str, caller_id: str) -> List[Notification]:
        """Newest first; participants only"""
        event = self.store.get_event_for_member(event_id, caller_id)
        if caller_id != event.organizer_id and caller_id not in event.participants:
            raise PermissionDenied("Join this event to see its notifications")
        return self.store.repo.list_notifications(event_id)
