"""
Favorites Router - the caller's bookmarked skateparks
"""
from typing import Dict, List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from skateguide.dependencies import get_current_actor, get_db
from skateguide.schemas.schemas import (
    Actor, FavoriteToggleRequest, FavoriteToggleResponse, SkateparkResponse
)
from skateguide.services.authorization_service import authorization_service
from skateguide.services.favorites_service import favorites_service

router = APIRouter()


@router.get("", response_model=List[SkateparkResponse])
def list_favorites(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Favorite parks in the order they were added."""
    return favorites_service.get_favorites(db, actor.id)


@router.post("/toggle", response_model=FavoriteToggleResponse)
def toggle_favorite(
    request: FavoriteToggleRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    actor = authorization_service.ensure_contributor(actor)
    return favorites_service.toggle_favorite(db, actor.id, request.skatepark_id)


@router.get("/counts", response_model=Dict[int, int])
def favorite_counts(
    ids: List[int] = Query(..., description="Skatepark ids"),
    db: Session = Depends(get_db)
):
    return favorites_service.get_counts(db, ids)
