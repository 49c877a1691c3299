"""
Users Router - profile, password, photo and account deletion
"""
from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from skateguide.dependencies import get_current_actor, get_db, get_media_storage
from skateguide.schemas.schemas import (
    Actor, MessageResponse, PasswordChangeRequest, UserResponse, UserStatsResponse
)
from skateguide.services.media_service import MediaStorage
from skateguide.services.user_service import user_service

router = APIRouter()


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return user_service.get_user(db, user_id)


@router.get("/{user_id}/stats", response_model=UserStatsResponse)
def get_user_stats(user_id: int, db: Session = Depends(get_db)):
    """Public profile numbers: spots added and their mean rating."""
    return user_service.get_stats(db, user_id)


@router.patch("/{user_id}/password", response_model=MessageResponse)
def change_password(
    user_id: int,
    request: PasswordChangeRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Change a password.

    Users must send their current password. Admins may reset the password
    of a non-admin user without it.
    """
    user_service.change_password(
        db,
        user_id,
        request.new_password,
        actor,
        current_password=request.current_password
    )
    return {"message": "Password updated."}


@router.put("/{user_id}/photo", response_model=UserResponse)
def upload_photo(
    user_id: int,
    photo: UploadFile = File(...),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    media: MediaStorage = Depends(get_media_storage)
):
    content = photo.file.read()
    return user_service.upload_photo(db, user_id, photo.filename or "", content, actor, media)


@router.delete("/{user_id}/photo", response_model=UserResponse)
def delete_photo(
    user_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    media: MediaStorage = Depends(get_media_storage)
):
    return user_service.delete_photo(db, user_id, actor, media)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_account(
    user_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    media: MediaStorage = Depends(get_media_storage)
):
    """Delete your own account, with its ratings and favorites."""
    message = user_service.delete_account(db, user_id, actor, media)
    return {"message": message}
