"""
Event store adapter: create/read/update of events, menus and memberships.

Authorization is not checked here; see ``lifecycle_service`` for the
organizer-only wrappers.
"""

from __future__ import annotations

import logging
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple

from app.core.config import settings
from app.core.errors import BackendUnavailable, InvalidCredentials, InvalidTransition, NotFoundError
from app.schemas import Event, JoinResult, MenuCourse, MenuCourseCreate
from app.services import invitation
from app.services.event_cache import EventCache, event_cache
from app.services.secrets_service import new_event_id, new_id, new_join_password

logger = logging.getLogger(__name__)

LIVE_STATUS = "active"


def to_utc_naive(value: datetime) -> datetime:
    """Store every timestamp as naive UTC"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _issued_at() -> int:
    return time.time_ns() // 1_000_000


class EventStore:
    """Backend-agnostic event operations over a repository"""

    def __init__(self, repo, cache: Optional[EventCache] = None, object_storage=None):
        self.repo = repo
        self.cache = cache if cache is not None else event_cache
        self.object_storage = object_storage

    def create_event(
        self,
        organizer_id: str,
        title: str,
        date: datetime,
        location: str,
        menu: Sequence[MenuCourseCreate],
        description: Optional[str] = None,
        event_type: str = "other",
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> Event:
        """Create an event with its menu and the organizer's membership"""
        event_id = new_event_id()
        password = new_join_password(settings.JOIN_PASSWORD_LENGTH)
        date = to_utc_naive(date)
        now = datetime.utcnow()

        event_row = {
            "id": event_id,
            "title": title,
            "description": description,
            "date": date,
            "location": location,
            "latitude": latitude,
            "longitude": longitude,
            "event_type": event_type,
            "organizer_id": organizer_id,
            "access_password": password,
            "qr_code": invitation.encode(event_id, password),
            "is_live": False,
            "status": "upcoming",
            "created_at": now,
            "expires_at": date + timedelta(days=settings.EVENT_RETENTION_DAYS),
        }
        course_rows = [
            {
                "id": new_id(),
                "type": course.type,
                "name": course.name.strip(),
                "description": course.description,
                "is_served": False,
            }
            for course in menu
        ]

        try:
            event = self.repo.create_event_bundle(event_row, course_rows, organizer_id, now)
        except BackendUnavailable as e:
            logger.error(f"Event creation failed at step {e.step}: {title}")
            raise BackendUnavailable(
                "The event could not be created. Please try again.",
                step=e.step,
                details={"event_id": event_id},
            ) from e

        logger.info(f"Event created: {event_id} by {organizer_id} with {len(course_rows)} courses")
        self.cache.put(event)
        return event

    def get_event_by_id(self, event_id: str) -> Event:
        cached = self.cache.get(event_id)
        if cached:
            return cached

        event = self.repo.get_event(event_id)
        if not event:
            raise NotFoundError("Event")
        self.cache.put(event)
        return event

    def get_event_fresh(self, event_id: str) -> Event:
        """Read past the cache and refresh the cached copy.

        Checks made before a write read here; the cached copy may predate a
        write from another process.
        """
        event = self.repo.get_event(event_id)
        if not event:
            self.cache.invalidate(event_id)
            raise NotFoundError("Event")
        self.cache.put(event)
        return event

    def get_event_for_member(self, event_id: str, user_id: str) -> Event:
        """Cached read, reloaded when the user is missing from the cached roster"""
        event = self.get_event_by_id(event_id)
        if user_id == event.organizer_id or user_id in event.participants:
            return event
        return self.get_event_fresh(event_id)

    def list_events_for_user(self, user_id: str) -> List[Event]:
        return self.repo.list_events_for_user(user_id)

    def join_event_with_password(self, event_id: str, password: str, user_id: str) -> JoinResult:
        """Add the user as a guest if the password matches.

        Joining twice is a success with ``already_member`` set. A duplicate
        insert from a concurrent join takes the same path.
        """
        event = self.repo.get_event(event_id)
        supplied = (password or "").strip().upper()
        if not event or not secrets.compare_digest(supplied.encode(), event.access_password.encode()):
            logger.info(f"Rejected join attempt for event {event_id} by {user_id}")
            raise InvalidCredentials()

        if user_id in event.participants:
            return JoinResult(event=event, already_member=True)

        inserted = self.repo.add_participant(event_id, user_id, "guest", datetime.utcnow())
        self.cache.invalidate(event_id)
        if inserted:
            logger.info(f"User {user_id} joined event {event_id}")

        return JoinResult(event=self.get_event_by_id(event_id), already_member=not inserted)

    def update_event_status(self, event_id: str, status: str, expected_status: str) -> Event:
        """Write status and is_live together, only if the stored status is still
        ``expected_status``. Raises InvalidTransition when it has moved on.
        """
        fields = {"status": status, "is_live": status == LIVE_STATUS}
        changed = self.repo.update_event_status(event_id, expected_status, fields)
        self.cache.invalidate(event_id)
        if not changed:
            current = self.get_event_fresh(event_id)
            logger.warning(
                f"Status of event {event_id} is {current.status}, expected {expected_status}; "
                f"{status} not written"
            )
            raise InvalidTransition(
                f"Cannot change an event from {current.status} to {status}",
                details={"from": current.status, "to": status},
            )
        logger.info(f"Event {event_id} status set to {status}")
        return self.get_event_by_id(event_id)

    def cancel_event(self, event_id: str) -> Event:
        current = self.get_event_fresh(event_id)
        return self.update_event_status(event_id, "cancelled", current.status)

    def delete_event(self, event_id: str) -> None:
        """Delete the event and every dependent row, then the stored photo files.

        File removal is best-effort: a file left behind is logged, the event
        stays deleted.
        """
        photos = self.repo.list_photos(event_id)
        self.repo.delete_event(event_id)
        self.cache.invalidate(event_id)
        logger.info(f"Event {event_id} deleted with {len(photos)} photos")

        if self.object_storage is None:
            return
        for photo in photos:
            for path in (photo.storage_path, photo.thumbnail_path):
                if not path:
                    continue
                try:
                    self.object_storage.delete(path)
                except BackendUnavailable as e:
                    logger.warning(f"Could not remove {path} of deleted event {event_id}: {e.message}")

    def get_course(self, course_id: str) -> Tuple[str, MenuCourse]:
        found = self.repo.get_course(course_id)
        if not found:
            raise NotFoundError("Course")
        return found

    def mark_course_served(self, course_id: str) -> Tuple[MenuCourse, bool]:
        """Mark a course served; returns the course and whether it changed"""
        event_id, course = self.get_course(course_id)
        changed = self.repo.mark_course_served(course_id)
        self.cache.invalidate(event_id)
        if changed:
            logger.info(f"Course {course_id} of event {event_id} served")
        return course.model_copy(update={"is_served": True}), changed

    def regenerate_password(self, event_id: str) -> Tuple[str, str]:
        """Issue a new password and token; every earlier token stops working"""
        current = self.get_event_fresh(event_id)
        password = new_join_password(settings.JOIN_PASSWORD_LENGTH)
        while password == current.access_password:
            password = new_join_password(settings.JOIN_PASSWORD_LENGTH)
        token = invitation.encode(event_id, password, issued_at=_issued_at())
        self.repo.update_event(event_id, {"access_password": password, "qr_code": token})
        self.cache.invalidate(event_id)
        logger.info(f"Join password regenerated for event {event_id}")
        return password, token
