"""
Firebase app and service clients
"""

from __future__ import annotations

import base64
import json
import os
from functools import lru_cache
from typing import Any

import firebase_admin
from firebase_admin import credentials, firestore, storage

from app.core.config import settings


def _service_account_info() -> dict[str, Any]:
    """Service account JSON from the first configured source"""
    if settings.FIREBASE_CREDENTIALS_JSON:
        return json.loads(settings.FIREBASE_CREDENTIALS_JSON)
    if settings.FIREBASE_CREDENTIALS_B64:
        return json.loads(base64.b64decode(settings.FIREBASE_CREDENTIALS_B64).decode("utf-8"))
    path = settings.FIREBASE_CREDENTIALS_FILE
    if path and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    raise RuntimeError(
        "USE_FIREBASE is set but no service account was found. "
        "Set FIREBASE_CREDENTIALS_JSON, FIREBASE_CREDENTIALS_B64 or FIREBASE_CREDENTIALS_FILE"
    )


@lru_cache(maxsize=1)
def get_firebase_app() -> firebase_admin.App:
    """The default Firebase app, initialized on first use"""
    if firebase_admin._apps:
        return firebase_admin.get_app()

    options = {"storageBucket": settings.FIREBASE_STORAGE_BUCKET} if settings.FIREBASE_STORAGE_BUCKET else None
    return firebase_admin.initialize_app(credentials.Certificate(_service_account_info()), options)


@lru_cache(maxsize=1)
def get_firestore_client():
    if not settings.USE_FIREBASE:
        return None
    return firestore.client(app=get_firebase_app())


@lru_cache(maxsize=1)
def get_storage_bucket():
    if not settings.USE_FIREBASE:
        return None
    return storage.bucket(app=get_firebase_app())
