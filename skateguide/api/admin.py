"""
Admin Router - moderation panel endpoints
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from skateguide.dependencies import get_current_actor, get_db, get_media_storage
from skateguide.schemas.schemas import (
    Actor, ActivityResponse, ActivityType, MessageResponse, PendingParksResponse,
    ReportResponse, RoleChangeRequest, StatsOverviewResponse, UserResponse
)
from skateguide.services.activity_service import activity_service
from skateguide.services.authorization_service import authorization_service
from skateguide.services.media_service import MediaStorage
from skateguide.services.skatepark_service import skatepark_service
from skateguide.services.user_service import user_service

router = APIRouter()


class ApprovalResponse(BaseModel):
    updated: bool
    already_approved: bool


class ActivityPage(BaseModel):
    data: List[ActivityResponse]
    next_cursor: Optional[int] = None


@router.get("/parks/pending", response_model=PendingParksResponse)
def pending_parks(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Unapproved parks, newest first."""
    authorization_service.ensure_admin(actor)
    return skatepark_service.pending(db, page=page, limit=limit)


@router.post("/parks/{park_id}/approve", response_model=ApprovalResponse)
def approve_park(
    park_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    return skatepark_service.approve_skatepark(db, park_id, actor)


@router.get("/parks/{park_id}/reports", response_model=List[ReportResponse])
def park_reports(
    park_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    return skatepark_service.list_reports(db, park_id, actor)


@router.patch("/users/{user_id}/role", response_model=UserResponse)
def change_role(
    user_id: int,
    request: RoleChangeRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    return user_service.update_role(db, user_id, request.role, actor)


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    media: MediaStorage = Depends(get_media_storage)
):
    message = user_service.delete_user_as_admin(db, user_id, actor, media)
    return {"message": message}


@router.get("/stats/overview", response_model=StatsOverviewResponse)
def stats_overview(
    new_users_days: int = Query(30, description="Clamped to 1..60"),
    top_contributors_limit: int = Query(5, description="Clamped to 1..20"),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    return user_service.stats_overview(
        db,
        actor,
        new_users_days=new_users_days,
        top_contributors_limit=top_contributors_limit
    )


@router.get("/activity", response_model=ActivityPage)
def list_activity(
    limit: int = Query(20, ge=1, le=100),
    before_id: Optional[int] = Query(None, description="Cursor from the previous page"),
    type: Optional[ActivityType] = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    authorization_service.ensure_admin(actor)
    return activity_service.list_activities(db, limit=limit, before_id=before_id, type=type)
