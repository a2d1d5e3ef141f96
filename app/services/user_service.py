"""
User profile service
"""

import logging
from typing import Any, Dict, Optional

from app.core.errors import NotFoundError, ValidationError
from app.schemas import User, UserCreate, UserUpdate
from app.services.secrets_service import new_id

logger = logging.getLogger(__name__)

class UserService:
    """Profiles mirrored from the identity provider, plus push registration"""

    def __init__(self, repo):
        self.repo = repo

    def register(self, data: UserCreate) -> User:
        """Create a local profile (local auth mode only)"""
        email = data.email.lower()
        if self.repo.get_user_by_email(email):
            raise ValidationError("An account with this email already exists",
                                  details={"errors": [{"field": "email", "message": "Already registered"}]})
        user = self.repo.create_user(new_id(), email, data.name.strip(), data.avatar)
        logger.info(f"User registered: {user.id}")
        return user

    def get_user(self, user_id: str) -> User:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User")
        return user

    def mirror_identity(self, claims: Dict[str, Any]) -> User:
        """Return the profile for a verified identity, creating it on first sign-in"""
        user_id = claims["uid"]
        user = self.repo.get_user(user_id)
        if user:
            return user

        email = (claims.get("email") or f"{user_id}@users.invalid").lower()
        name: Optional[str] = claims.get("name") or email.split("@")[0]
        user = self.repo.create_user(user_id, email, name, claims.get("picture"))
        logger.info(f"Profile mirrored for user {user_id}")
        return user

    def update_profile(self, user_id: str, data: UserUpdate) -> User:
        fields = data.model_dump(exclude_unset=True)
        if "name" in fields:
            if not fields["name"] or not fields["name"].strip():
                raise ValidationError("Name must not be empty")
            fields["name"] = fields["name"].strip()
        if not fields:
            return self.get_user(user_id)

        user = self.repo.update_user(user_id, fields)
        if not user:
            raise NotFoundError("User")
        return user

    def register_push_token(self, user_id: str, token: str) -> None:
        self.repo.set_push_token(user_id, token.strip())
        logger.info(f"Push token registered for user {user_id}")
