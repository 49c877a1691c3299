"""
Celery tasks - periodic consistency checks for cached park aggregates
"""
import logging
from celery import shared_task
from skateguide.db.database import SessionLocal
from skateguide.services.favorites_service import favorites_service
from skateguide.services.rating_service import rating_service

logger = logging.getLogger(__name__)


def get_db_session():
    """Get database session for tasks"""
    return SessionLocal()


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def reconcile_favorites_counts(self):
    """
    Recount favorites_count for every park from the favorites rows.

    Toggles keep the counter exact; this only repairs drift left by
    manual edits or the zero floor.
    """
    db = get_db_session()
    try:
        corrected = favorites_service.reconcile_counts(db)
        logger.info(f"Favorites reconciliation done: {corrected} parks corrected")
        return {"corrected": corrected}
    except Exception as e:
        logger.error(f"Favorites reconciliation failed: {e}")
        raise self.retry(exc=e)
    finally:
        db.close()


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def recalculate_ratings(self):
    """Recompute avg_rating for every park from its ratings rows."""
    db = get_db_session()
    try:
        changed = rating_service.recalculate_all(db)
        logger.info(f"Rating recalculation done: {changed} parks changed")
        return {"changed": changed}
    except Exception as e:
        logger.error(f"Rating recalculation failed: {e}")
        raise self.retry(exc=e)
    finally:
        db.close()
