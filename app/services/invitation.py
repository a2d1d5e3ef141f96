"""
Invitation token encoding and decoding

Token format: ``<scheme>://<event_id>||<password>`` with an optional
``#<issued-at-millis>`` suffix. The suffix only makes each issued token string
unique; decoding ignores it.
"""

from typing import NamedTuple, Optional
from urllib.parse import quote

from app.core.config import settings
from app.core.errors import DecodeError

DELIMITER = "||"
STAMP_SEPARATOR = "#"


class InvitationPayload(NamedTuple):
    event_id: str
    password: str


def _prefix(scheme: Optional[str] = None) -> str:
    return f"{scheme or settings.INVITE_SCHEME}://"


def _check_part(name: str, value: str) -> None:
    if not value:
        raise ValueError(f"Invitation {name} must not be empty")
    if "|" in value or STAMP_SEPARATOR in value:
        raise ValueError(f"Invitation {name} must not contain '|' or '{STAMP_SEPARATOR}'")


def encode(event_id: str, password: str, issued_at: Optional[int] = None,
           scheme: Optional[str] = None) -> str:
    """Pack an event id and join password into a shareable token"""
    _check_part("event id", event_id)
    _check_part("password", password)

    token = f"{_prefix(scheme)}{event_id}{DELIMITER}{password}"
    if issued_at is not None:
        token = f"{token}{STAMP_SEPARATOR}{issued_at}"
    return token


def decode(token: str, scheme: Optional[str] = None) -> InvitationPayload:
    """Unpack a scanned token; raises DecodeError if it is not an invitation"""
    prefix = _prefix(scheme)
    token = (token or "").strip()

    if not token.startswith(prefix):
        raise DecodeError("This code is not an event invitation")

    body = token[len(prefix):].split(STAMP_SEPARATOR, 1)[0]
    if DELIMITER not in body:
        raise DecodeError()

    event_id, password = body.split(DELIMITER, 1)
    if not event_id or not password or "|" in event_id or "|" in password:
        raise DecodeError()

    return InvitationPayload(event_id=event_id, password=password)


def join_link(token: str) -> str:
    """Deep link used by the share action"""
    return f"{settings.BASE_URL}/join?token={quote(token, safe='')}"
