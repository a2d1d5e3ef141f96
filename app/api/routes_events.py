"""
Event API routes: creation, joining, lifecycle and invitations
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from app.api.deps import get_dispatcher, get_lifecycle_service
from app.api.ws import websocket_manager
from app.core.errors import BackendUnavailable, ValidationError
from app.schemas import Event, EventCreate, JoinRequest, NotificationCreate, PasswordRegenerated, StatusUpdate, User
from app.services.lifecycle_service import EventLifecycleService
from app.services.notification_service import NotificationDispatcher
from app.services.qr_service import invitation_qr_png
from app.utils.responses import success_response
from app.utils.security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

SECRET_FIELDS = {"access_password", "qr_code"}

def event_view(event: Event, viewer_id: str) -> dict:
    """Serialize an event; the join secret is visible to the organizer only"""
    exclude = None if viewer_id == event.organizer_id else SECRET_FIELDS
    return event.model_dump(mode="json", exclude=exclude)

async def broadcast_status(event: Event):
    await websocket_manager.broadcast_to_event(event.id, {
        "type": "status",
        "status": event.status,
        "is_live": event.is_live,
        "timestamp": datetime.utcnow().isoformat()
    })

@router.post("")
async def create_event(
    event_data: EventCreate,
    user: User = Depends(get_current_user),
    service: EventLifecycleService = Depends(get_lifecycle_service)
):
    """Create a new event with its menu"""
    event = service.create_event(user.id, event_data)
    return success_response(
        message="Event created successfully",
        data=event_view(event, user.id),
        status_code=201
    )

@router.get("")
async def list_events(
    user: User = Depends(get_current_user),
    service: EventLifecycleService = Depends(get_lifecycle_service)
):
    """Events the caller organizes or participates in, by date"""
    events = service.list_events(user.id)
    return success_response(
        message="Events retrieved",
        data=[event_view(event, user.id) for event in events]
    )

@router.post("/join")
async def join_event(
    join_data: JoinRequest,
    user: User = Depends(get_current_user),
    service: EventLifecycleService = Depends(get_lifecycle_service)
):
    """Join with a scanned invitation token or an event id and password"""
    if join_data.token:
        result = service.join_with_token(join_data.token, user.id)
    elif join_data.event_id and join_data.password:
        result = service.join_event(join_data.event_id, join_data.password, user.id)
    else:
        raise ValidationError("Scan an invitation or enter the event code and password")

    message = "You were already part of this event" if result.already_member else "You have joined the event!"
    return success_response(
        message=message,
        data={
            "event": event_view(result.event, user.id),
            "already_member": result.already_member
        }
    )

@router.get("/{event_id}")
async def get_event(
    event_id: str,
    user: User = Depends(get_current_user),
    service: EventLifecycleService = Depends(get_lifecycle_service)
):
    """Event details with organizer, menu and participants"""
    event = service.get_event(event_id, user.id)
    return success_response(message="Event retrieved", data=event_view(event, user.id))

@router.post("/{event_id}/live")
async def toggle_live(
    event_id: str,
    user: User = Depends(get_current_user),
    service: EventLifecycleService = Depends(get_lifecycle_service)
):
    """Switch between upcoming and active"""
    event = service.toggle_live(event_id, user.id)
    await broadcast_status(event)
    message = "Event is now live" if event.is_live else "Event is no longer live"
    return success_response(message=message, data=event_view(event, user.id))

@router.patch("/{event_id}/status")
async def update_status(
    event_id: str,
    status_data: StatusUpdate,
    user: User = Depends(get_current_user),
    service: EventLifecycleService = Depends(get_lifecycle_service)
):
    """Apply an explicit status transition"""
    event = service.update_event_status(event_id, user.id, status_data.status)
    await broadcast_status(event)
    return success_response(message="Event status updated", data=event_view(event, user.id))

@router.post("/{event_id}/cancel")
async def cancel_event(
    event_id: str,
    user: User = Depends(get_current_user),
    service: EventLifecycleService = Depends(get_lifecycle_service)
):
    """Cancel the event; cannot be undone"""
    event = service.cancel_event(event_id, user.id)
    await broadcast_status(event)
    return success_response(message="Event cancelled", data=event_view(event, user.id))

@router.post("/{event_id}/end")
async def end_event(
    event_id: str,
    user: User = Depends(get_current_user),
    service: EventLifecycleService = Depends(get_lifecycle_service)
):
    """Mark the event as ended"""
    event = service.end_event(event_id, user.id)
    await broadcast_status(event)
    return success_response(message="Event ended", data=event_view(event, user.id))

@router.delete("/{event_id}")
async def delete_event(
    event_id: str,
    user: User = Depends(get_current_user),
    service: EventLifecycleService = Depends(get_lifecycle_service)
):
    """Delete the event with its menu, participants, photos and notifications"""
    service.delete_event(event_id, user.id)
    return success_response(message="Event deleted")

@router.post("/{event_id}/password")
async def regenerate_password(
    event_id: str,
    user: User = Depends(get_current_user),
    service: EventLifecycleService = Depends(get_lifecycle_service)
):
    """Issue a new join password; previous invitations stop working"""
    password, token = service.regenerate_password(event_id, user.id)
    return success_response(
        message="New password generated. Share the new QR code with your guests.",
        data=PasswordRegenerated(password=password, token=token).model_dump()
    )

@router.get("/{event_id}/invitation")
async def get_invitation(
    event_id: str,
    user: User = Depends(get_current_user),
    service: EventLifecycleService = Depends(get_lifecycle_service)
):
    """Invitation token, password and share link"""
    invitation = service.get_invitation(event_id, user.id)
    return success_response(message="Invitation retrieved", data=invitation.model_dump())

@router.get("/{event_id}/qr.png")
async def get_qr_code(
    event_id: str,
    user: User = Depends(get_current_user),
    service: EventLifecycleService = Depends(get_lifecycle_service)
):
    """QR code image embedding the current invitation token"""
    invitation = service.get_invitation(event_id, user.id)
    qr_bytes = invitation_qr_png(invitation.token)

    return Response(
        content=qr_bytes,
        media_type="image/png",
        headers={
            "Content-Disposition": f"inline; filename=qr_{event_id}.png",
            "Cache-Control": "no-store"
        }
    )

@router.post("/{event_id}/courses/{course_id}/served")
async def mark_course_served(
    event_id: str,
    course_id: str,
    user: User = Depends(get_current_user),
    service: EventLifecycleService = Depends(get_lifecycle_service),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Mark a course served and notify participants the first time"""
    _, course, changed = service.mark_course_served(course_id, user.id, event_id=event_id)

    notification = None
    if changed:
        try:
            notification = await dispatcher.notify_course_served(event_id, course_id)
        except BackendUnavailable as e:
            logger.error(f"Course {course_id} served but notification was not stored: {e.message}")

    return success_response(
        message=f"{course.name} is being served" if changed else f"{course.name} was already served",
        data={
            "course": course.model_dump(mode="json"),
            "notification": notification.model_dump(mode="json") if notification else None
        }
    )

@router.get("/{event_id}/notifications")
async def list_notifications(
    event_id: str,
    user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Notification log of the event, newest first"""
    notifications = dispatcher.list_notifications(event_id, user.id)
    return success_response(
        message="Notifications retrieved",
        data=[n.model_dump(mode="json") for n in notifications]
    )

@router.post("/{event_id}/notifications")
async def post_event_update(
    event_id: str,
    notification_data: NotificationCreate,
    user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Send an update to every participant (organizer only)"""
    notification = await dispatcher.post_event_update(
        event_id, user.id, notification_data.title, notification_data.message
    )
    return success_response(
        message="Update sent",
        data=notification.model_dump(mode="json"),
        status_code=201
    )
