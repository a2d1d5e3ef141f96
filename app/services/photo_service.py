"""
Event photo album service
"""

from __future__ import annotations

import io
import logging
import time
from datetime import datetime
from typing import List, Tuple

from PIL import Image, UnidentifiedImageError

from app.core.config import settings
from app.core.errors import BackendUnavailable, InvalidTransition, NotFoundError, PermissionDenied, ValidationError
from app.schemas import Event, Photo
from app.services.event_store import EventStore
from app.services.secrets_service import new_id

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def make_thumbnail(content: bytes, size: int) -> bytes:
    """Downscale an image to fit in a size x size box, as JPEG"""
    try:
        with Image.open(io.BytesIO(content)) as img:
            img = img.convert("RGB")
            img.thumbnail((size, size))
            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=85)
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("The uploaded file is not a valid image") from e
    return buffer.getvalue()


class PhotoService:
    """Upload, list and delete photos of an event"""

    def __init__(self, store: EventStore, object_storage):
        self.store = store
        self.object_storage = object_storage

    def _event_for_member(self, event_id: str, user_id: str) -> Event:
        event = self.store.get_event_for_member(event_id, user_id)
        if user_id != event.organizer_id and user_id not in event.participants:
            raise PermissionDenied("Join this event to see its photos")
        return event

    def upload_photo(self, event_id: str, user_id: str, content: bytes, content_type: str,
                     caption: str = None) -> Tuple[Event, Photo]:
        event = self._event_for_member(event_id, user_id)
        if event.status == "cancelled":
            raise InvalidTransition("Photos cannot be added to a cancelled event")

        extension = CONTENT_TYPE_EXTENSIONS.get(content_type)
        if not extension:
            raise ValidationError("Unsupported image format. Use JPEG, PNG, WebP or GIF.")
        if not content:
            raise ValidationError("The uploaded file is empty")
        if len(content) > settings.MAX_UPLOAD_SIZE:
            raise ValidationError(f"Photo exceeds the {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB limit")

        thumbnail = make_thumbnail(content, settings.THUMBNAIL_SIZE)

        filename = f"{time.time_ns() // 1_000_000}_{user_id}"
        storage_path = f"events/{event_id}/photos/{filename}.{extension}"
        thumbnail_path = f"events/{event_id}/photos/thumbs/{filename}.jpg"

        url = self.object_storage.put(storage_path, content, content_type)
        try:
            thumbnail_url = self.object_storage.put(thumbnail_path, thumbnail, "image/jpeg")
            photo = self.store.repo.add_photo({
                "id": new_id(),
                "event_id": event_id,
                "uploaded_by": user_id,
                "url": url,
                "thumbnail": thumbnail_url,
                "caption": (caption or "").strip() or None,
                "storage_path": storage_path,
                "thumbnail_path": thumbnail_path,
                "uploaded_at": datetime.utcnow(),
            })
        except BackendUnavailable:
            for path in (storage_path, thumbnail_path):
                try:
                    self.object_storage.delete(path)
                except BackendUnavailable as cleanup_error:
                    logger.warning(f"Could not remove {path} after a failed upload: {cleanup_error.message}")
            raise

        logger.info(f"Photo {photo.id} uploaded to event {event_id} by {user_id}")
        return event, photo

    def list_photos(self, event_id: str, user_id: str) -> List[Photo]:
        self._event_for_member(event_id, user_id)
        return self.store.repo.list_photos(event_id)

    def delete_photo(self, event_id: str, photo_id: str, user_id: str) -> None:
        """Uploader or organizer only"""
        event = self.store.get_event_by_id(event_id)
        photo = self.store.repo.get_photo(photo_id)
        if not photo or photo.event_id != event_id:
            raise NotFoundError("Photo")
        if user_id not in (photo.uploaded_by, event.organizer_id):
            raise PermissionDenied("Only the uploader or the organizer can delete this photo")

        self.object_storage.delete(photo.storage_path)
        if photo.thumbnail_path:
            self.object_storage.delete(photo.thumbnail_path)
        self.store.repo.delete_photo(photo_id)
        logger.info(f"Photo {photo_id} deleted from event {event_id} by {user_id}")
