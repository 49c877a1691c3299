"""
Skatepark Service - CRUD, listings, reports, approval and stats for skateparks
"""
import logging
import re
from collections import Counter
from typing import Dict, Any, List, Optional, Sequence, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from skateguide.config import settings
from skateguide.db.models import Skatepark, SkateparkLink, SkateparkRating, SkateparkReport, User
from skateguide.exceptions import NotFoundError, ValidationError
from skateguide.schemas.schemas import (
    Actor, ActivityType, AnnotatedSkatepark, Coordinates, FilterState,
    SkateparkCreate, SkateparkDetailResponse, SkateparkExtrasUpdate,
    SkateparkResponse, SkateparkUpdate, Tag
)
from skateguide.services.activity_service import activity_service
from skateguide.services.authorization_service import authorization_service
from skateguide.services.filter_service import filter_service
from skateguide.services.geo_service import geo_service
from skateguide.services.media_service import MediaStorage
from skateguide.services.rating_service import rating_service

logger = logging.getLogger(__name__)

# (filename, content) pairs read from the upload
PhotoUpload = Tuple[str, bytes]

URL_PATTERN = re.compile(r"^https?://.+")
MAX_TAGS = 10
MAX_LINKS = 10


class SkateparkService:
    """Service for skatepark records"""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def get_park(self, db: Session, park_id: int) -> Skatepark:
        park = db.query(Skatepark).filter(Skatepark.id == park_id).first()
        if not park:
            raise NotFoundError(f"Skatepark with id {park_id} not found.")
        return park

    def to_response(self, park: Skatepark) -> SkateparkResponse:
        return SkateparkResponse.model_validate(park)

    def _check_location_free(
        self,
        db: Session,
        latitude: float,
        longitude: float,
        exclude_id: Optional[int] = None
    ) -> None:
        query = db.query(Skatepark.id).filter(
            Skatepark.latitude == latitude,
            Skatepark.longitude == longitude
        )
        if exclude_id is not None:
            query = query.filter(Skatepark.id != exclude_id)
        if query.first():
            raise ValidationError("A skatepark already exists at this location.")

    def _validate_links(self, urls: Sequence[str]) -> None:
        for url in urls:
            if not URL_PATTERN.match(url or ""):
                raise ValidationError(f"Invalid URL: {url}")

    def _store_photos(self, media: MediaStorage, photos: Sequence[PhotoUpload]) -> List[str]:
        names = []
        try:
            for filename, content in photos:
                names.append(media.store(filename, content))
        except Exception:
            self._delete_photos(media, names)
            raise
        return names

    def _delete_photos(self, media: MediaStorage, names: Sequence[str]) -> None:
        for name in names:
            if name != settings.DEFAULT_PARK_PHOTO:
                media.delete(name)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def list_parks(self, db: Session, page: int = 1, limit: Optional[int] = None) -> Dict[str, Any]:
        """Newest first, page-based"""
        limit = min(max(limit or settings.DEFAULT_PAGE_SIZE, 1), settings.MAX_PAGE_SIZE)
        page = max(page, 1)

        total = db.query(func.count(Skatepark.id)).scalar() or 0
        parks = db.query(Skatepark).order_by(
            Skatepark.created_at.desc(), Skatepark.id.desc()
        ).offset((page - 1) * limit).limit(limit).all()

        return {
            "data": [self.to_response(p) for p in parks],
            "page": page,
            "limit": limit,
            "total": total
        }

    def get_detail(
        self,
        db: Session,
        park_id: int,
        actor: Optional[Actor] = None
    ) -> SkateparkDetailResponse:
        """One park plus the caller's own rating"""
        park = self.get_park(db, park_id)
        base = self.to_response(park)
        return SkateparkDetailResponse(
            **base.model_dump(),
            user_rating=rating_service.get_user_rating(db, park_id, actor.id if actor else None),
            ratings_count=rating_service.count_ratings(db, park_id)
        )

    def search(
        self,
        db: Session,
        filters: FilterState,
        user_coords: Optional[Coordinates] = None,
        favorite_ids: Sequence[int] = (),
        excluded_ids: Sequence[int] = (),
        deleting_ids: Sequence[int] = ()
    ) -> List[AnnotatedSkatepark]:
        """Run the filter engine over every stored park"""
        parks = db.query(Skatepark).order_by(Skatepark.id).all()
        return filter_service.filter_and_sort(
            [self.to_response(p) for p in parks],
            filters,
            user_coords=user_coords,
            favorite_ids=favorite_ids,
            excluded_ids=excluded_ids,
            deleting_ids=deleting_ids
        )

    def nearby(
        self,
        db: Session,
        latitude: float,
        longitude: float,
        radius_km: float
    ) -> List[AnnotatedSkatepark]:
        """Parks within radius_km, closest first"""
        geo_service.validate_coordinates(latitude, longitude)
        if radius_km <= 0:
            raise ValidationError("Radius must be positive.")

        # Bounding box narrows the candidates before the exact haversine check
        lat_delta = radius_km / 111.0
        candidates = db.query(Skatepark).filter(
            Skatepark.latitude.between(latitude - lat_delta, latitude + lat_delta)
        ).all()

        return filter_service.filter_and_sort(
            [self.to_response(p) for p in candidates],
            FilterState(distance_filter_enabled=True, distance_filter=radius_km, sort_by="distance"),
            user_coords=Coordinates(lat=latitude, lng=longitude)
        )

    def top_rated(self, db: Session, limit: Optional[int] = None) -> List[SkateparkResponse]:
        """Rated parks only, highest average first"""
        rated_ids = select(SkateparkRating.skatepark_id).distinct()
        query = db.query(Skatepark).filter(Skatepark.id.in_(rated_ids)).order_by(
            Skatepark.avg_rating.desc(), Skatepark.id
        )
        if limit:
            query = query.limit(limit)
        return [self.to_response(p) for p in query.all()]

    def recent(self, db: Session, limit: int = 3) -> List[SkateparkResponse]:
        parks = db.query(Skatepark).order_by(
            Skatepark.created_at.desc(), Skatepark.id.desc()
        ).limit(limit).all()
        return [self.to_response(p) for p in parks]

    def by_creator(self, db: Session, user_id: int) -> List[SkateparkResponse]:
        parks = db.query(Skatepark).filter(
            Skatepark.created_by == user_id
        ).order_by(Skatepark.id).all()
        return [self.to_response(p) for p in parks]

    def by_tags(self, db: Session, tags: Sequence[Tag]) -> List[SkateparkResponse]:
        """Parks carrying any of the given tags"""
        wanted = {tag.value for tag in tags or []}
        if not wanted:
            raise ValidationError("Missing tags for search.")

        # tags is a JSON list column, so matching happens in Python
        parks = db.query(Skatepark).order_by(Skatepark.id).all()
        matches = [p for p in parks if wanted.intersection(p.tags or [])]
        if not matches:
            raise NotFoundError("No parks found with the given tags.")
        return [self.to_response(p) for p in matches]

    def pending(self, db: Session, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        """Unapproved parks for the admin panel, newest first"""
        limit = min(max(limit, 1), 100)
        page = max(page, 1)
        query = db.query(Skatepark).filter(Skatepark.is_approved.is_(False))

        total = query.count()
        parks = query.order_by(
            Skatepark.created_at.desc(), Skatepark.id.desc()
        ).offset((page - 1) * limit).limit(limit).all()

        return {
            "data": [
                {
                    "id": p.id,
                    "title": p.title,
                    "thumbnail": p.photo_names[0] if p.photo_names else None,
                    "created_by": p.created_by,
                    "created_at": p.created_at,
                    "link": f"/parks/{p.id}"
                }
                for p in parks
            ],
            "page": page,
            "limit": limit,
            "total": total
        }

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def add_skatepark(
        self,
        db: Session,
        data: SkateparkCreate,
        actor: Optional[Actor],
        media: MediaStorage,
        photos: Sequence[PhotoUpload] = ()
    ) -> Skatepark:
        """Create an unapproved park owned by the actor"""
        actor = authorization_service.ensure_contributor(actor)
        geo_service.validate_coordinates(data.latitude, data.longitude)
        self._validate_links(data.external_links)
        if len(photos) > settings.MAX_PHOTOS_PER_PARK:
            raise ValidationError(f"At most {settings.MAX_PHOTOS_PER_PARK} photos per skatepark.")
        self._check_location_free(db, data.latitude, data.longitude)

        photo_names = self._store_photos(media, photos) or [settings.DEFAULT_PARK_PHOTO]

        park = Skatepark(
            title=data.title,
            description=data.description,
            tags=[t.value for t in data.tags],
            size=data.size.value,
            levels=[lvl.value for lvl in data.levels],
            is_park=data.is_park,
            latitude=data.latitude,
            longitude=data.longitude,
            photo_names=photo_names,
            avg_rating=0,
            favorites_count=0,
            is_approved=False,
            created_by=actor.id
        )
        park.external_links = [SkateparkLink(url=url, sent_by=actor.id) for url in data.external_links]

        try:
            db.add(park)
            db.flush()
            activity_service.record(
                db, ActivityType.park_created, actor.id, "park", park.id,
                {"title": park.title}
            )
            db.commit()
        except IntegrityError as e:
            db.rollback()
            self._delete_photos(media, photo_names)
            raise ValidationError("A skatepark already exists at this location.") from e
        except Exception:
            db.rollback()
            self._delete_photos(media, photo_names)
            raise

        db.refresh(park)
        logger.info(f"Skatepark {park.id} '{park.title}' created by user {actor.id}")
        return park

    def update_skatepark(
        self,
        db: Session,
        park_id: int,
        data: SkateparkUpdate,
        actor: Optional[Actor],
        media: MediaStorage,
        photos: Sequence[PhotoUpload] = ()
    ) -> Skatepark:
        """Owner/admin edit; photos not in keep_photo_names are removed"""
        park = self.get_park(db, park_id)
        authorization_service.ensure_can_edit(actor, authorization_service.park_resource(park))

        changes = data.model_dump(exclude_unset=True, exclude={"keep_photo_names"})
        if changes.get("latitude") is not None:
            geo_service.validate_coordinates(changes["latitude"], changes["longitude"])
            self._check_location_free(db, changes["latitude"], changes["longitude"], exclude_id=park.id)

        for key in ("title", "size", "levels", "is_park", "latitude", "longitude"):
            if key in changes and changes[key] is None:
                raise ValidationError(f"{key} cannot be empty.")

        current = list(park.photo_names or [])
        keep = current if data.keep_photo_names is None else [
            name for name in current if name in data.keep_photo_names
        ]
        # The placeholder never counts towards the photo limit
        keep = [name for name in keep if name != settings.DEFAULT_PARK_PHOTO]
        removed = [name for name in current if name not in keep]
        if len(keep) + len(photos) > settings.MAX_PHOTOS_PER_PARK:
            raise ValidationError(f"At most {settings.MAX_PHOTOS_PER_PARK} photos per skatepark.")

        new_names = self._store_photos(media, photos)
        photo_names = keep + new_names
        if not photo_names:
            photo_names = [settings.DEFAULT_PARK_PHOTO]

        try:
            for key, value in changes.items():
                if key in ("tags", "levels"):
                    value = [v.value if hasattr(v, "value") else v for v in value or []]
                elif key == "size":
                    value = value.value if hasattr(value, "value") else value
                setattr(park, key, value)
            park.photo_names = photo_names
            db.commit()
        except IntegrityError as e:
            db.rollback()
            self._delete_photos(media, new_names)
            raise ValidationError("A skatepark already exists at this location.") from e
        except Exception:
            db.rollback()
            self._delete_photos(media, new_names)
            raise

        self._delete_photos(media, removed)
        db.refresh(park)
        logger.info(f"Skatepark {park.id} updated by user {actor.id}")
        return park

    def add_extras(
        self,
        db: Session,
        park_id: int,
        extras: SkateparkExtrasUpdate,
        actor: Optional[Actor]
    ) -> Skatepark:
        """Append new tags and external links; existing ones are left alone"""
        park = self.get_park(db, park_id)
        authorization_service.ensure_can_edit(actor, authorization_service.park_resource(park))
        self._validate_links(extras.links)

        tags = list(park.tags or [])
        for tag in extras.tags:
            if tag.value not in tags:
                tags.append(tag.value)
        if len(tags) > MAX_TAGS:
            raise ValidationError(f"Too many tags (max {MAX_TAGS}).")

        existing_urls = {link.url for link in park.external_links}
        new_urls = []
        for url in extras.links:
            if url not in existing_urls and url not in new_urls:
                new_urls.append(url)
        if len(existing_urls) + len(new_urls) > MAX_LINKS:
            raise ValidationError(f"Too many links (max {MAX_LINKS}).")

        try:
            park.tags = tags
            for url in new_urls:
                park.external_links.append(SkateparkLink(url=url, sent_by=actor.id))
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(park)
        return park

    def delete_skatepark(
        self,
        db: Session,
        park_id: int,
        actor: Optional[Actor],
        media: MediaStorage
    ) -> str:
        """Owner/admin delete; favorites, ratings, reports, links and photos go with it"""
        park = self.get_park(db, park_id)
        authorization_service.ensure_can_delete(actor, authorization_service.park_resource(park))

        title = park.title
        photo_names = list(park.photo_names or [])
        try:
            db.delete(park)
            activity_service.record(
                db, ActivityType.park_deleted, actor.id, "park", park_id, {"title": title}
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        self._delete_photos(media, photo_names)
        logger.info(f"Skatepark {park_id} '{title}' deleted by user {actor.id}")
        return f"Skatepark {title} has been deleted."

    def report_skatepark(
        self,
        db: Session,
        park_id: int,
        actor: Optional[Actor],
        reason: str
    ) -> SkateparkReport:
        """Store a report; reports never change visibility by themselves"""
        actor = authorization_service.ensure_contributor(actor)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Report reason is required.")
        if len(reason) > 300:
            raise ValidationError("Report reason too long.")

        self.get_park(db, park_id)
        already = db.query(SkateparkReport.id).filter(
            SkateparkReport.skatepark_id == park_id,
            SkateparkReport.reported_by == actor.id
        ).first()
        if already:
            raise ValidationError("User already reported this park.")

        report = SkateparkReport(skatepark_id=park_id, reported_by=actor.id, reason=reason)
        try:
            db.add(report)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise ValidationError("User already reported this park.") from e
        except Exception:
            db.rollback()
            raise

        db.refresh(report)
        logger.info(f"Skatepark {park_id} reported by user {actor.id}")
        return report

    def list_reports(self, db: Session, park_id: int, actor: Optional[Actor]) -> List[SkateparkReport]:
        authorization_service.ensure_admin(actor)
        park = self.get_park(db, park_id)
        return list(park.reports)

    def approve_skatepark(
        self,
        db: Session,
        park_id: int,
        actor: Optional[Actor]
    ) -> Dict[str, Any]:
        """Admin-only; approving an approved park is a no-op"""
        park = self.get_park(db, park_id)
        authorization_service.ensure_can_approve(actor, authorization_service.park_resource(park))

        if park.is_approved:
            return {"updated": False, "already_approved": True}

        try:
            park.is_approved = True
            activity_service.record(
                db, ActivityType.park_approved, actor.id, "park", park.id,
                {"title": park.title}
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Skatepark {park_id} approved by admin {actor.id}")
        return {"updated": True, "already_approved": False}

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------
    def park_breakdown(self, db: Session) -> Dict[str, Any]:
        """Park totals by approval state, type, size and level"""
        by_type = Counter()
        by_size = Counter()
        by_level = Counter()
        approved = 0
        rows = db.query(
            Skatepark.is_approved, Skatepark.is_park, Skatepark.size, Skatepark.levels
        ).all()
        for is_approved, is_park, size, levels in rows:
            if is_approved:
                approved += 1
            by_type["park" if is_park else "street"] += 1
            by_size[size] += 1
            for level in levels or []:
                by_level[level] += 1

        return {
            "total_parks": len(rows),
            "approved_parks": approved,
            "pending_parks": len(rows) - approved,
            "parks_by_type": dict(by_type),
            "parks_by_size": dict(by_size),
            "parks_by_level": dict(by_level)
        }

    def top_contributors(self, db: Session, limit: int = 5) -> List[Dict[str, Any]]:
        """Users who added the most parks; ties go to the older account"""
        park_count = func.count(Skatepark.id)
        rows = db.query(User.id, User.name, park_count).join(
            Skatepark, Skatepark.created_by == User.id
        ).group_by(User.id, User.name).order_by(
            park_count.desc(), User.id
        ).limit(limit).all()
        return [
            {"user_id": user_id, "name": name, "count": count}
            for user_id, name, count in rows
        ]


# Singleton instance
skatepark_service = SkateparkService()
