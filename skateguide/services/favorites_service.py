"""
Favorites Service - user to skatepark bookmarks

The per-park favorites_count is maintained incrementally: each toggle
changes the membership row and the counter in one transaction. The
counter never goes below zero; reconcile_counts() recounts from the
favorites rows and is run periodically by the worker.
"""
import logging
from typing import Dict, Any, List, Iterable
from sqlalchemy.orm import Session
from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError

from skateguide.db.models import Favorite, Skatepark, User
from skateguide.exceptions import ConflictError, NotFoundError, retry_once_on_conflict

logger = logging.getLogger(__name__)


class FavoritesService:
    """Service for managing user favorites"""

    def _ensure_exists(self, db: Session, user_id: int, park_id: int) -> None:
        if not db.query(User.id).filter(User.id == user_id).first():
            raise NotFoundError(f"User with id {user_id} not found.")
        if not db.query(Skatepark.id).filter(Skatepark.id == park_id).first():
            raise NotFoundError(f"Skatepark with id {park_id} not found.")

    def _increment(self, db: Session, park_id: int) -> None:
        db.execute(
            update(Skatepark)
            .where(Skatepark.id == park_id)
            .values(favorites_count=Skatepark.favorites_count + 1)
            .execution_options(synchronize_session=False)
        )

    def _decrement(self, db: Session, park_id: int) -> None:
        result = db.execute(
            update(Skatepark)
            .where(Skatepark.id == park_id, Skatepark.favorites_count > 0)
            .values(favorites_count=Skatepark.favorites_count - 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(
                f"favorites_count for park {park_id} would go negative; kept at 0"
            )

    @retry_once_on_conflict
    def toggle_favorite(
        self,
        db: Session,
        user_id: int,
        park_id: int
    ) -> Dict[str, Any]:
        """Add the park to the user's favorites, or remove it if present"""
        self._ensure_exists(db, user_id, park_id)

        try:
            removed = db.execute(
                delete(Favorite)
                .where(Favorite.user_id == user_id, Favorite.skatepark_id == park_id)
                .execution_options(synchronize_session=False)
            ).rowcount

            if removed:
                self._decrement(db, park_id)
                action = "removed"
            else:
                db.add(Favorite(user_id=user_id, skatepark_id=park_id))
                db.flush()
                self._increment(db, park_id)
                action = "added"

            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Concurrent favorite toggle by user {user_id} on park {park_id}: {e}")
            raise ConflictError("Favorite was changed concurrently, please retry.") from e
        except Exception:
            db.rollback()
            raise

        count = db.query(Skatepark.favorites_count).filter(Skatepark.id == park_id).scalar()
        logger.info(f"User {user_id} {action} park {park_id} (favorites_count={count})")
        return {"action": action, "favorites_count": count or 0}

    def release_counts(self, db: Session, park_ids: Iterable[int]) -> None:
        """Decrement counters for favorites removed outside toggle_favorite (no commit)"""
        for park_id in park_ids:
            self._decrement(db, park_id)

    def get_favorite_ids(self, db: Session, user_id: int) -> List[int]:
        """Favorite park ids in insertion order"""
        rows = db.query(Favorite.skatepark_id).filter(
            Favorite.user_id == user_id
        ).order_by(Favorite.id).all()
        return [row[0] for row in rows]

    def get_favorites(self, db: Session, user_id: int) -> List[Skatepark]:
        """Favorite parks in insertion order; references to missing parks are skipped"""
        if not db.query(User.id).filter(User.id == user_id).first():
            raise NotFoundError(f"User with id {user_id} not found.")

        return db.query(Skatepark).join(
            Favorite, Favorite.skatepark_id == Skatepark.id
        ).filter(
            Favorite.user_id == user_id
        ).order_by(Favorite.id).all()

    def get_counts(self, db: Session, park_ids: Iterable[int]) -> Dict[int, int]:
        """Stored favorites_count per park id"""
        park_ids = list(park_ids)
        if not park_ids:
            return {}
        rows = db.query(Skatepark.id, Skatepark.favorites_count).filter(
            Skatepark.id.in_(park_ids)
        ).all()
        return {park_id: count for park_id, count in rows}

    def reconcile_counts(self, db: Session) -> int:
        """Recount favorites_count from scratch; returns corrected park count"""
        actual = dict(
            db.query(Favorite.skatepark_id, func.count(Favorite.id))
            .group_by(Favorite.skatepark_id)
            .all()
        )
        corrected = 0
        try:
            for park_id, stored in db.query(Skatepark.id, Skatepark.favorites_count).all():
                expected = actual.get(park_id, 0)
                if stored != expected:
                    logger.warning(
                        f"favorites_count drift on park {park_id}: stored {stored}, actual {expected}"
                    )
                    db.execute(
                        update(Skatepark)
                        .where(Skatepark.id == park_id)
                        .values(favorites_count=expected)
                        .execution_options(synchronize_session=False)
                    )
                    corrected += 1
            db.commit()
        except Exception:
            db.rollback()
            raise

        return corrected


# Singleton instance
favorites_service = FavoritesService()
