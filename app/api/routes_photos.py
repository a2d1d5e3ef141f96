"""
Event photo album routes
"""

import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.api.deps import get_dispatcher, get_photo_service
from app.core.errors import BackendUnavailable
from app.schemas import User
from app.services.notification_service import NotificationDispatcher
from app.services.photo_service import PhotoService
from app.utils.responses import success_response
from app.utils.security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/{event_id}/photos")
async def list_photos(
    event_id: str,
    user: User = Depends(get_current_user),
    service: PhotoService = Depends(get_photo_service)
):
    """Photos of the event, newest first"""
    photos = service.list_photos(event_id, user.id)
    return success_response(
        message="Photos retrieved",
        data=[photo.model_dump(mode="json") for photo in photos]
    )

@router.post("/{event_id}/photos")
async def upload_photo(
    event_id: str,
    file: UploadFile = File(...),
    caption: str = Form(""),
    user: User = Depends(get_current_user),
    service: PhotoService = Depends(get_photo_service),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Upload a photo to the event album"""
    content = await file.read()
    event, photo = service.upload_photo(event_id, user.id, content, file.content_type, caption)

    try:
        await dispatcher.notify_photo_uploaded(event, photo)
    except BackendUnavailable as e:
        logger.error(f"Photo {photo.id} stored but notification was not: {e.message}")

    return success_response(
        message="Photo uploaded",
        data=photo.model_dump(mode="json"),
        status_code=201
    )

@router.delete("/{event_id}/photos/{photo_id}")
async def delete_photo(
    event_id: str,
    photo_id: str,
    user: User = Depends(get_current_user),
    service: PhotoService = Depends(get_photo_service)
):
    """Delete a photo (uploader or organizer)"""
    service.delete_photo(event_id, photo_id, user.id)
    return success_response(message="Photo deleted")
