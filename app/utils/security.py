"""
Security utilities and authentication
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import logging
from typing import Optional

from firebase_admin import auth as firebase_auth

from app.core.config import settings
from app.schemas import User
from app.services.firebase_client import get_firebase_app
from app.services.repositories import get_repository
from app.services.user_service import UserService
from app.core.db import get_db
from app.utils.responses import unauthorized_error

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db=Depends(get_db),
) -> User:
    """Resolve the calling user from the bearer token.

    With Firebase enabled the token is a Firebase ID token. Otherwise it is the
    id of a locally registered profile (development only).
    """
    if credentials is None or not credentials.credentials:
        unauthorized_error("Sign in to continue")

    user = resolve_user(credentials.credentials, get_repository(db))
    if not user:
        unauthorized_error("Session expired. Please sign in again.")
    return user

def resolve_user(token: str, repo) -> Optional[User]:
    """Map a bearer token to a profile; None if the token is not valid"""
    service = UserService(repo)

    if settings.USE_FIREBASE:
        try:
            claims = firebase_auth.verify_id_token(token, app=get_firebase_app())
        except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError,
                firebase_auth.RevokedIdTokenError, firebase_auth.CertificateFetchError) as e:
            logger.info(f"Rejected ID token: {e}")
            return None
        return service.mirror_identity(claims)

    return repo.get_user(token)

