# app/background_tasks/cleanup_tasks.py
"""
Periodic housekeeping:
- purge_expired_codes(): every 15 minutes
- purge_old_locations(): daily
"""

import logging
from datetime import datetime, timedelta, timezone

from app.core.config import settings
from app.crud import crud_gps_location, crud_telegram
from app.db.session import SessionLocal

logger = logging.getLogger(__name__)


def purge_expired_codes():
    """Delete expired Telegram link and login codes."""
    db = SessionLocal()
    try:
        deleted = crud_telegram.purge_expired_codes(db)
        if deleted:
            logger.info(f"Purged {deleted} expired one-time codes")
    finally:
        db.close()


def purge_old_locations():
    """Drop GPS rows older than the retention window."""
    db = SessionLocal()
    try:
        cutoff = datetime.now(timezone.utc) - timedelta(days=settings.GPS_RETENTION_DAYS)
        deleted = crud_gps_location.purge_older_than(db, cutoff)
        logger.info(f"Purged {deleted} GPS locations recorded before {cutoff.isoformat()}")
    finally:
        db.close()
