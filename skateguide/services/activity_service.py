"""
Activity Service - attributable log of moderation and admin actions
"""
import logging
from typing import Dict, Any, List, Optional
from sqlalchemy.orm import Session

from skateguide.db.models import Activity
from skateguide.schemas.schemas import ActivityType

logger = logging.getLogger(__name__)


class ActivityService:
    """Records who did what to which park or account"""

    def record(
        self,
        db: Session,
        type: ActivityType,
        actor_user_id: int,
        target_type: str,
        target_id: int,
        details: Optional[Dict[str, Any]] = None
    ) -> Activity:
        """Add an activity row to the current transaction (caller commits)"""
        activity = Activity(
            type=type.value,
            actor_user_id=actor_user_id,
            target_type=target_type,
            target_id=target_id,
            details=details
        )
        db.add(activity)
        logger.info(f"Activity {type.value}: user {actor_user_id} -> {target_type} {target_id}")
        return activity

    def list_activities(
        self,
        db: Session,
        limit: int = 20,
        before_id: Optional[int] = None,
        type: Optional[ActivityType] = None
    ) -> Dict[str, Any]:
        """Newest first, cursor-paginated by id"""
        limit = min(max(limit, 1), 100)
        query = db.query(Activity)
        if type is not None:
            query = query.filter(Activity.type == type.value)
        if before_id is not None:
            query = query.filter(Activity.id < before_id)

        rows: List[Activity] = query.order_by(Activity.id.desc()).limit(limit + 1).all()
        has_more = len(rows) > limit
        rows = rows[:limit]
        return {
            "data": rows,
            "next_cursor": rows[-1].id if has_more else None
        }


# Singleton instance
activity_service = ActivityService()
