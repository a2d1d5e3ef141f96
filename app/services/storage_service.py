"""
Object storage for event photos (local disk or Firebase Storage)
"""

import logging
import os

from google.api_core import exceptions as google_exceptions

from app.core.config import settings
from app.core.errors import BackendUnavailable
from app.services.firebase_client import get_storage_bucket

logger = logging.getLogger(__name__)

class LocalObjectStorage:
    """Stores objects under UPLOAD_DIR, served by the app at /uploads"""

    def __init__(self, root: str = None, base_url: str = None):
        self.root = root or settings.UPLOAD_DIR
        self.base_url = base_url or f"{settings.BASE_URL}/uploads"

    def _full_path(self, path: str) -> str:
        full_path = os.path.abspath(os.path.join(self.root, path))
        if not full_path.startswith(os.path.abspath(self.root) + os.sep):
            raise ValueError(f"Object path escapes storage root: {path}")
        return full_path

    def put(self, path: str, data: bytes, content_type: str) -> str:
        full_path = self._full_path(path)
        try:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            with open(full_path, "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error(f"Error writing object {path}: {e}")
            raise BackendUnavailable("Failed to upload photo", step="store_object") from e
        return f"{self.base_url}/{path}"

    def delete(self, path: str) -> None:
        full_path = self._full_path(path)
        try:
            if os.path.exists(full_path):
                os.remove(full_path)
        except OSError as e:
            logger.error(f"Error deleting object {path}: {e}")
            raise BackendUnavailable("Failed to delete photo", step="delete_object") from e

class FirebaseObjectStorage:
    """Stores objects in the default Firebase Storage bucket"""

    def __init__(self, bucket):
        self.bucket = bucket

    def put(self, path: str, data: bytes, content_type: str) -> str:
        try:
            blob = self.bucket.blob(path)
            blob.upload_from_string(data, content_type=content_type)
            blob.make_public()
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Error uploading object {path}: {e}")
            raise BackendUnavailable("Failed to upload photo", step="store_object") from e
        return blob.public_url

    def delete(self, path: str) -> None:
        try:
            self.bucket.blob(path).delete()
        except google_exceptions.NotFound:
            logger.warning(f"Object {path} already removed")
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Error deleting object {path}: {e}")
            raise BackendUnavailable("Failed to delete photo", step="delete_object") from e

def get_object_storage():
    if settings.USE_FIREBASE:
        return FirebaseObjectStorage(get_storage_bucket())
    return LocalObjectStorage()
