"""
Auth Router - registration, login and session endpoints
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from skateguide.dependencies import get_current_actor, get_db
from skateguide.schemas.schemas import (
    Actor, LoginRequest, MessageResponse, RegisterRequest, TokenResponse, UserResponse
)
from skateguide.services.user_service import user_service

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """Create a regular user account. Emails are unique, case-insensitively."""
    return user_service.register(db=db, data=request)


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token."""
    return user_service.login(db=db, email=request.email, password=request.password)


@router.post("/logout", response_model=MessageResponse)
def logout(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    user_service.logout(db=db, user_id=actor.id, actor=actor)
    return {"message": "Logged out."}


@router.get("/me", response_model=UserResponse)
def me(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    return user_service.get_user(db, actor.id)
