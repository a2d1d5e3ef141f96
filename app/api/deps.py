"""
Per-request service wiring
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from app.api.ws import websocket_manager
from app.core.db import get_db
from app.services.event_store import EventStore
from app.services.lifecycle_service import EventLifecycleService
from app.services.notification_service import NotificationDispatcher
from app.services.photo_service import PhotoService
from app.services.push_service import get_push_sender
from app.services.repositories import get_repository
from app.services.storage_service import get_object_storage
from app.services.user_service import UserService

def get_repo(db: Session = Depends(get_db)):
    return get_repository(db)

def get_event_store(repo=Depends(get_repo)) -> EventStore:
    return EventStore(repo, object_storage=get_object_storage())

def get_lifecycle_service(store: EventStore = Depends(get_event_store)) -> EventLifecycleService:
    return EventLifecycleService(store)

def get_dispatcher(store: EventStore = Depends(get_event_store)) -> NotificationDispatcher:
    return NotificationDispatcher(store, websocket_manager, get_push_sender())

def get_photo_service(store: EventStore = Depends(get_event_store)) -> PhotoService:
    return PhotoService(store, store.object_storage)

def get_user_service(repo=Depends(get_repo)) -> UserService:
    return UserService(repo)
