"""
Rating Service - one rating per user per skatepark, average kept in sync.

Rules:
- Values are whole or half stars between 1 and 5
- Re-rating replaces the user's previous value, it never appends
- avg_rating is recomputed from the ratings rows in the same transaction
  as every write, and is 0 when a park has no ratings
"""
import logging
import math
from typing import Iterable, Optional, Dict, Any
from sqlalchemy.orm import Session
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from skateguide.db.models import Skatepark, SkateparkRating, User
from skateguide.exceptions import (
    ConflictError, NotFoundError, ValidationError, retry_once_on_conflict
)

logger = logging.getLogger(__name__)


class RatingService:
    """Service for skatepark ratings"""

    MIN_VALUE = 1
    MAX_VALUE = 5

    def validate_value(self, value) -> float:
        """Return the rating as a float or raise ValidationError"""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError("Rating must be a number.")
        if not math.isfinite(value) or not self.MIN_VALUE <= value <= self.MAX_VALUE:
            raise ValidationError(
                f"Rating must be between {self.MIN_VALUE} and {self.MAX_VALUE}."
            )
        if value * 2 != int(value * 2):
            raise ValidationError("Rating must be a whole or half star.")
        return float(value)

    @staticmethod
    def average(values: Iterable[float]) -> float:
        """Arithmetic mean, 0 for no values"""
        values = list(values)
        if not values:
            return 0.0
        return math.fsum(values) / len(values)

    def _upsert_statement(self, db: Session, park_id: int, user_id: int, value: float):
        """INSERT ... ON CONFLICT DO UPDATE for dialects that support it"""
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            return None

        stmt = insert(SkateparkRating).values(
            skatepark_id=park_id,
            user_id=user_id,
            value=value
        )
        return stmt.on_conflict_do_update(
            index_elements=[SkateparkRating.skatepark_id, SkateparkRating.user_id],
            set_={"value": value, "updated_at": func.now()}
        )

    def _locked_upsert(self, db: Session, park_id: int, user_id: int, value: float) -> None:
        existing = db.query(SkateparkRating).filter(
            SkateparkRating.skatepark_id == park_id,
            SkateparkRating.user_id == user_id
        ).with_for_update().first()

        if existing:
            existing.value = value
        else:
            db.add(SkateparkRating(skatepark_id=park_id, user_id=user_id, value=value))
        db.flush()

    def apply_average(self, db: Session, park_id: int) -> None:
        """Recompute avg_rating from the ratings rows (no commit)"""
        avg_value = select(
            func.coalesce(func.avg(SkateparkRating.value), 0.0)
        ).where(
            SkateparkRating.skatepark_id == park_id
        ).scalar_subquery()

        db.execute(
            update(Skatepark)
            .where(Skatepark.id == park_id)
            .values(avg_rating=avg_value)
            .execution_options(synchronize_session=False)
        )

    @retry_once_on_conflict
    def rate(
        self,
        db: Session,
        park_id: int,
        user_id: int,
        value
    ) -> Skatepark:
        """Insert or replace the user's rating and recompute the park average"""
        value = self.validate_value(value)

        try:
            # Lock the park first; avg_rating must see every committed rating
            park = db.query(Skatepark).filter(Skatepark.id == park_id).with_for_update().first()
            if not park:
                raise NotFoundError(f"Skatepark with id {park_id} not found.")
            if not db.query(User.id).filter(User.id == user_id).first():
                raise NotFoundError(f"User with id {user_id} not found.")

            stmt = self._upsert_statement(db, park_id, user_id, value)
            if stmt is not None:
                db.execute(stmt)
            else:
                self._locked_upsert(db, park_id, user_id, value)

            self.apply_average(db, park_id)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Concurrent rating write on park {park_id} by user {user_id}: {e}")
            raise ConflictError("Rating was updated concurrently, please retry.") from e
        except Exception:
            db.rollback()
            raise

        db.refresh(park)
        logger.info(f"User {user_id} rated park {park_id} with {value} (avg {park.avg_rating})")
        return park

    def get_user_rating(
        self,
        db: Session,
        park_id: int,
        user_id: Optional[int]
    ) -> Optional[float]:
        """The given user's rating for a park, or None"""
        if user_id is None:
            return None
        row = db.query(SkateparkRating.value).filter(
            SkateparkRating.skatepark_id == park_id,
            SkateparkRating.user_id == user_id
        ).first()
        return row[0] if row else None

    def count_ratings(self, db: Session, park_id: int) -> int:
        return db.query(func.count(SkateparkRating.id)).filter(
            SkateparkRating.skatepark_id == park_id
        ).scalar() or 0

    def rating_summary(self, db: Session, park_id: int, user_id: int) -> Dict[str, Any]:
        """Response payload after a rating write"""
        park = db.query(Skatepark).filter(Skatepark.id == park_id).first()
        if not park:
            raise NotFoundError(f"Skatepark with id {park_id} not found.")
        return {
            "skatepark_id": park_id,
            "user_id": user_id,
            "value": self.get_user_rating(db, park_id, user_id),
            "avg_rating": park.avg_rating,
            "ratings_count": self.count_ratings(db, park_id)
        }

    def recalculate_all(self, db: Session) -> int:
        """Recompute every park's average; returns how many parks changed"""
        changed = 0
        parks = db.query(Skatepark.id, Skatepark.avg_rating).all()
        try:
            for park_id, stored in parks:
                values = [
                    row[0] for row in db.query(SkateparkRating.value).filter(
                        SkateparkRating.skatepark_id == park_id
                    ).all()
                ]
                if abs(self.average(values) - (stored or 0)) > 1e-9:
                    changed += 1
                    self.apply_average(db, park_id)
            db.commit()
        except Exception:
            db.rollback()
            raise

        if changed:
            logger.warning(f"Corrected avg_rating on {changed} skateparks")
        return changed


# Singleton instance
rating_service = RatingService()
