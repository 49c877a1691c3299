"""
FastAPI dependencies for the SkateGuide API
"""
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from skateguide.db.database import get_db
from skateguide.db.models import User
from skateguide.exceptions import UnauthorizedError
from skateguide.schemas.schemas import Actor, Role
from skateguide.services.media_service import MediaStorage, get_media_storage as default_media_storage
from skateguide.services.security_service import security_service

bearer_scheme = HTTPBearer(auto_error=False)


def get_media_storage() -> MediaStorage:
    """Media storage collaborator (overridden in tests)"""
    return default_media_storage()


def get_optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> Optional[Actor]:
    """Resolve the bearer token to an Actor, or None when no token is sent"""
    if credentials is None:
        return None

    user_id = security_service.decode_access_token(credentials.credentials)
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise UnauthorizedError("User for this token no longer exists.")
    return Actor(id=user.id, role=Role(user.role))


def get_current_actor(actor: Optional[Actor] = Depends(get_optional_actor)) -> Actor:
    """Same as get_optional_actor but the token is mandatory"""
    if actor is None:
        raise UnauthorizedError("Authentication required.")
    return actor
