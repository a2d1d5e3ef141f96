"""
User profile routes
"""

from fastapi import APIRouter, Depends

from app.api.deps import get_user_service
from app.core.config import settings
from app.core.errors import PermissionDenied
from app.schemas import PushTokenUpdate, User, UserCreate, UserUpdate
from app.services.user_service import UserService
from app.utils.responses import success_response
from app.utils.security import get_current_user

router = APIRouter()

@router.post("")
async def register_user(
    user_data: UserCreate,
    service: UserService = Depends(get_user_service)
):
    """Register a local profile; the returned id is the bearer token"""
    if settings.USE_FIREBASE:
        raise PermissionDenied("Sign up through Firebase Authentication")
    user = service.register(user_data)
    return success_response(
        message="Account created",
        data=user.model_dump(mode="json"),
        status_code=201
    )

@router.get("/me")
async def get_me(user: User = Depends(get_current_user)):
    """Profile of the caller"""
    return success_response(message="Profile retrieved", data=user.model_dump(mode="json"))

@router.patch("/me")
async def update_me(
    user_data: UserUpdate,
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Update name or avatar of the caller"""
    updated = service.update_profile(user.id, user_data)
    return success_response(message="Profile updated", data=updated.model_dump(mode="json"))

@router.put("/me/push-token")
async def register_push_token(
    token_data: PushTokenUpdate,
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Register the device push address of the caller"""
    service.register_push_token(user.id, token_data.token)
    return success_response(message="Push notifications enabled")
