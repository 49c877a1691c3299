"""
System Router - Health checks
"""
import logging
from datetime import datetime
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from skateguide.dependencies import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint.
    Reports database reachability; the service itself is up if this answers.
    """
    database_status = "healthy"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        database_status = "unhealthy"

    return {
        "status": "ok" if database_status == "healthy" else "degraded",
        "database": database_status,
        "timestamp": datetime.utcnow().isoformat() + "Z"
    }
