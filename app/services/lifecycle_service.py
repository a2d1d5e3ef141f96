"""
Event lifecycle controller

Wraps the event store with the organizer-only authorization rule, input
validation and the status state machine:

    upcoming <-> active        (toggle live)
    upcoming|active -> cancelled, ended   (terminal)
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set, Tuple

from app.core.errors import InvalidTransition, PermissionDenied, ValidationError
from app.schemas import Event, EventCreate, Invitation, JoinResult, MenuCourse
from app.services import invitation
from app.services.event_store import EventStore

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[str, Set[str]] = {
    "upcoming": {"active", "ended", "cancelled"},
    "active": {"upcoming", "ended", "cancelled"},
    "ended": set(),
    "cancelled": set(),
}
TERMINAL_STATUSES = {status for status, targets in ALLOWED_TRANSITIONS.items() if not targets}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def validate_event_input(data: EventCreate) -> EventCreate:
    """Reject missing required fields; drop menu entries left blank"""
    errors: List[Dict[str, str]] = []
    if not data.title.strip():
        errors.append({"field": "title", "message": "Title is required"})
    if not data.location.strip():
        errors.append({"field": "location", "message": "Location is required"})

    menu = [course for course in data.menu if course.name.strip()]
    if not menu:
        errors.append({"field": "menu", "message": "Add at least one course with a name"})

    if errors:
        raise ValidationError("Please fill in all required fields", details={"errors": errors})

    return data.model_copy(update={
        "title": data.title.strip(),
        "location": data.location.strip(),
        "menu": menu,
    })


class EventLifecycleService:
    """Organizer-checked operations on events"""

    def __init__(self, store: EventStore):
        self.store = store

    @staticmethod
    def _require_organizer(event: Event, caller_id: str) -> None:
        if caller_id != event.organizer_id:
            logger.info(f"User {caller_id} denied organizer action on event {event.id}")
            raise PermissionDenied()

    def _require_participant(self, event: Event, caller_id: str) -> None:
        if caller_id != event.organizer_id and caller_id not in event.participants:
            raise PermissionDenied("Join this event to see it")

    def _transition(self, event: Event, target: str) -> Event:
        if not can_transition(event.status, target):
            logger.warning(f"Rejected transition {event.status} -> {target} for event {event.id}")
            raise InvalidTransition(
                f"Cannot change an event from {event.status} to {target}",
                details={"from": event.status, "to": target},
            )
        return self.store.update_event_status(event.id, target, expected_status=event.status)

    # Creation and reads

    def create_event(self, caller_id: str, data: EventCreate) -> Event:
        data = validate_event_input(data)
        return self.store.create_event(
            organizer_id=caller_id,
            title=data.title,
            description=data.description,
            date=data.date,
            location=data.location,
            menu=data.menu,
            event_type=data.event_type,
            latitude=data.latitude,
            longitude=data.longitude,
        )

    def get_event(self, event_id: str, caller_id: str) -> Event:
        event = self.store.get_event_for_member(event_id, caller_id)
        self._require_participant(event, caller_id)
        return event

    def list_events(self, caller_id: str) -> List[Event]:
        return self.store.list_events_for_user(caller_id)

    # Joining

    def join_event(self, event_id: str, password: str, caller_id: str) -> JoinResult:
        return self.store.join_event_with_password(event_id, password, caller_id)

    def join_with_token(self, token: str, caller_id: str) -> JoinResult:
        payload = invitation.decode(token)
        return self.store.join_event_with_password(payload.event_id, payload.password, caller_id)

    # Organizer-only

    def update_event_status(self, event_id: str, caller_id: str, status: str) -> Event:
        event = self.store.get_event_fresh(event_id)
        self._require_organizer(event, caller_id)
        return self._transition(event, status)

    def toggle_live(self, event_id: str, caller_id: str) -> Event:
        event = self.store.get_event_fresh(event_id)
        self._require_organizer(event, caller_id)
        target = "upcoming" if event.status == "active" else "active"
        return self._transition(event, target)

    def end_event(self, event_id: str, caller_id: str) -> Event:
        return self.update_event_status(event_id, caller_id, "ended")

    def cancel_event(self, event_id: str, caller_id: str) -> Event:
        return self.update_event_status(event_id, caller_id, "cancelled")

    def delete_event(self, event_id: str, caller_id: str) -> None:
        event = self.store.get_event_fresh(event_id)
        self._require_organizer(event, caller_id)
        self.store.delete_event(event_id)

    def mark_course_served(self, course_id: str, caller_id: str,
                           event_id: Optional[str] = None) -> Tuple[str, MenuCourse, bool]:
        """Returns (event id, course, whether the flag changed)"""
        course_event_id, _ = self.store.get_course(course_id)
        if event_id is not None and event_id != course_event_id:
            raise ValidationError("Course does not belong to this event")

        event = self.store.get_event_fresh(course_event_id)
        self._require_organizer(event, caller_id)
        course, changed = self.store.mark_course_served(course_id)
        return course_event_id, course, changed

    def regenerate_password(self, event_id: str, caller_id: str) -> Tuple[str, str]:
        event = self.store.get_event_fresh(event_id)
        self._require_organizer(event, caller_id)
        return self.store.regenerate_password(event_id)

    def get_invitation(self, event_id: str, caller_id: str) -> Invitation:
        event = self.store.get_event_fresh(event_id)
        self._require_organizer(event, caller_id)
        return Invitation(
            event_id=event.id,
            password=event.access_password,
            token=event.qr_code,
            link=invitation.join_link(event.qr_code),
        )
