"""
Parsing boundary between loosely shaped backend records and typed entities.

ORM rows and Firestore documents both pass through here. Missing required
fields are reported as a backend failure instead of leaking ``None`` into the
domain; optional fields fall back to their schema defaults.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.core.errors import BackendUnavailable
from app.schemas.event import Event, MenuCourse
from app.schemas.notification import Notification
from app.schemas.photo import Photo
from app.schemas.user import User

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def parse_record(model: Type[M], record: Any, what: str) -> M:
    """Validate a dict or ORM row into ``model``"""
    try:
        if isinstance(record, dict):
            return model.model_validate(record)
        return model.model_validate(record, from_attributes=True)
    except PydanticValidationError as e:
        logger.error(f"Malformed {what} record: {e.errors()}")
        raise BackendUnavailable(f"Received a malformed {what} record", step=f"parse_{what}") from e


def drop_none(record: Dict[str, Any]) -> Dict[str, Any]:
    """Remove ``None`` values so schema defaults apply"""
    return {key: value for key, value in record.items() if value is not None}


def parse_user(record: Any) -> User:
    return parse_record(User, record, "user")


def parse_course(record: Any) -> MenuCourse:
    if isinstance(record, dict):
        record = drop_none(record)
    return parse_record(MenuCourse, record, "menu_course")


def parse_event(
    record: Dict[str, Any],
    organizer: Optional[Any] = None,
    menu: Iterable[Any] = (),
    participants: Iterable[str] = (),
) -> Event:
    """Assemble an event from its own record plus the joined rows"""
    data = drop_none(dict(record))
    data["organizer"] = parse_user(organizer) if organizer is not None else None
    data["menu"] = [parse_course(course) for course in menu]
    data["participants"] = list(dict.fromkeys(participants))
    return parse_record(Event, data, "event")


def parse_photo(record: Dict[str, Any], uploader: Optional[Any] = None) -> Photo:
    data = drop_none(dict(record))
    data["uploader"] = parse_user(uploader) if uploader is not None else None
    return parse_record(Photo, data, "photo")


def parse_notification(record: Any) -> Notification:
    return parse_record(Notification, record, "notification")
