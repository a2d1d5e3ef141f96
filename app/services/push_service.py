"""
Push notification delivery
"""

import logging
from typing import Any, Dict, Optional

from firebase_admin import messaging

from app.core.config import settings
from app.services.firebase_client import get_firebase_app

logger = logging.getLogger(__name__)

class PushSender:
    """Log-only sender used when Firebase is not configured"""

    def send(self, token: str, title: str, body: str, data: Optional[Dict[str, Any]] = None) -> None:
        logger.info(f"Push delivery disabled, skipping '{title}' for token {token[:12]}...")

class FirebasePushSender(PushSender):
    """Delivers through Firebase Cloud Messaging"""

    def send(self, token: str, title: str, body: str, data: Optional[Dict[str, Any]] = None) -> None:
        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title=title, body=body),
            # FCM data values must be strings
            data={key: str(value) for key, value in (data or {}).items()},
        )
        message_id = messaging.send(message, app=get_firebase_app())
        logger.info(f"Push sent: {message_id}")

def get_push_sender() -> PushSender:
    if settings.USE_FIREBASE:
        return FirebasePushSender()
    return PushSender()
