"""
Skateparks Router - listing, search, CRUD, ratings and reports
"""
import logging
from typing import List, Optional, Type
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from skateguide.dependencies import (
    get_current_actor, get_db, get_media_storage, get_optional_actor
)
from skateguide.exceptions import ValidationError
from skateguide.schemas.schemas import (
    Actor, AnnotatedSkatepark, Capabilities, MessageResponse, PaginatedSkateparks,
    RatingRequest, RatingResponse, ReportRequest, ReportResponse, SearchRequest,
    SkateparkCreate, SkateparkDetailResponse, SkateparkExtrasUpdate,
    SkateparkResponse, SkateparkUpdate, Tag
)
from skateguide.services.authorization_service import authorization_service
from skateguide.services.favorites_service import favorites_service
from skateguide.services.media_service import MediaStorage
from skateguide.services.rating_service import rating_service
from skateguide.services.skatepark_service import skatepark_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_form_json(model: Type[BaseModel], raw: str):
    """Validate the JSON carried in a multipart ``data`` field"""
    try:
        return model.model_validate_json(raw)
    except PydanticValidationError as e:
        messages = [
            f"{'.'.join(str(p) for p in err['loc']) or 'data'}: {err['msg']}"
            for err in e.errors()
        ]
        raise ValidationError("; ".join(messages)) from e


def _read_photos(photos: Optional[List[UploadFile]]):
    uploads = []
    for photo in photos or []:
        uploads.append((photo.filename or "", photo.file.read()))
    return uploads


# ============================================
# LISTINGS
# ============================================
@router.get("", response_model=PaginatedSkateparks)
def list_skateparks(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """All skateparks, newest first."""
    return skatepark_service.list_parks(db, page=page, limit=limit)


@router.post("/search", response_model=List[AnnotatedSkatepark])
def search_skateparks(
    request: SearchRequest,
    actor: Optional[Actor] = Depends(get_optional_actor),
    db: Session = Depends(get_db)
):
    """
    Filter and sort parks in one pass.

    Filters apply in this order: excluded ids, search term, type, size,
    level, tags (any shared), distance (only with user coordinates),
    rating range, favorites of the caller, approval. Then sort_by is
    applied; "distance" without coordinates falls back to "rating".
    """
    favorite_ids = favorites_service.get_favorite_ids(db, actor.id) if actor else []
    return skatepark_service.search(
        db,
        request.filters,
        user_coords=request.user_coords,
        favorite_ids=favorite_ids,
        excluded_ids=request.excluded_ids,
        deleting_ids=request.deleting_ids
    )


@router.get("/nearby", response_model=List[AnnotatedSkatepark])
def nearby_skateparks(
    lat: float = Query(...),
    lng: float = Query(...),
    radius_km: float = Query(10, gt=0),
    db: Session = Depends(get_db)
):
    return skatepark_service.nearby(db, lat, lng, radius_km)


@router.get("/top-rated", response_model=List[SkateparkResponse])
def top_rated_skateparks(
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return skatepark_service.top_rated(db, limit=limit)


@router.get("/recent", response_model=List[SkateparkResponse])
def recent_skateparks(
    limit: int = Query(3, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return skatepark_service.recent(db, limit=limit)


@router.get("/by-user/{user_id}", response_model=List[SkateparkResponse])
def skateparks_by_user(user_id: int, db: Session = Depends(get_db)):
    return skatepark_service.by_creator(db, user_id)


@router.get("/by-tags", response_model=List[SkateparkResponse])
def skateparks_by_tags(
    tags: str = Query(..., description="Comma-separated tags, e.g. Bowl,Rail"),
    db: Session = Depends(get_db)
):
    """Parks with any of the given tags. Unknown tag names are ignored."""
    known = {tag.value for tag in Tag}
    wanted = [Tag(name.strip()) for name in tags.split(",") if name.strip() in known]
    return skatepark_service.by_tags(db, wanted)


# ============================================
# SINGLE PARK
# ============================================
@router.get("/{park_id}", response_model=SkateparkDetailResponse)
def get_skatepark(
    park_id: int,
    actor: Optional[Actor] = Depends(get_optional_actor),
    db: Session = Depends(get_db)
):
    return skatepark_service.get_detail(db, park_id, actor)


@router.get("/{park_id}/capabilities", response_model=Capabilities)
def skatepark_capabilities(
    park_id: int,
    actor: Optional[Actor] = Depends(get_optional_actor),
    db: Session = Depends(get_db)
):
    """What the caller may do with this park (approve / edit / delete)."""
    park = skatepark_service.get_park(db, park_id)
    return authorization_service.capabilities(actor, authorization_service.park_resource(park))


@router.post("", response_model=SkateparkResponse, status_code=status.HTTP_201_CREATED)
def create_skatepark(
    data: str = Form(..., description="SkateparkCreate as JSON"),
    photos: Optional[List[UploadFile]] = File(None),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    media: MediaStorage = Depends(get_media_storage)
):
    """Add a skatepark. It stays unapproved until an admin approves it."""
    payload = _parse_form_json(SkateparkCreate, data)
    uploads = _read_photos(photos)
    return skatepark_service.add_skatepark(db, payload, actor, media, photos=uploads)


@router.patch("/{park_id}", response_model=SkateparkResponse)
def update_skatepark(
    park_id: int,
    data: str = Form("{}", description="SkateparkUpdate as JSON"),
    photos: Optional[List[UploadFile]] = File(None),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    media: MediaStorage = Depends(get_media_storage)
):
    payload = _parse_form_json(SkateparkUpdate, data)
    uploads = _read_photos(photos)
    return skatepark_service.update_skatepark(db, park_id, payload, actor, media, photos=uploads)


@router.patch("/{park_id}/extras", response_model=SkateparkResponse)
def add_skatepark_extras(
    park_id: int,
    request: SkateparkExtrasUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Append tags and external links."""
    return skatepark_service.add_extras(db, park_id, request, actor)


@router.delete("/{park_id}", response_model=MessageResponse)
def delete_skatepark(
    park_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    media: MediaStorage = Depends(get_media_storage)
):
    message = skatepark_service.delete_skatepark(db, park_id, actor, media)
    return {"message": message}


# ============================================
# RATINGS / REPORTS
# ============================================
@router.post("/{park_id}/rate", response_model=RatingResponse)
def rate_skatepark(
    park_id: int,
    request: RatingRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Rate 1-5 in half steps. Rating again replaces the previous value."""
    actor = authorization_service.ensure_contributor(actor)
    rating_service.rate(db, park_id, actor.id, request.value)
    return rating_service.rating_summary(db, park_id, actor.id)


@router.post("/{park_id}/report", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
def report_skatepark(
    park_id: int,
    request: ReportRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    return skatepark_service.report_skatepark(db, park_id, actor, request.reason)
