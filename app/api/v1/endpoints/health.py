# app/api/v1/endpoints/health.py
"""
Liveness and dependency checks for the marketplace API.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ServiceUnavailableError
from app.db.redis import redis_client
from app.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_check():
    return {"status": "healthy", "service": "asloguz-marketplace"}


@router.get("/db")
def database_health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database check failed: {e}")
        raise ServiceUnavailableError("Database unreachable", service="database")
    return {"status": "healthy", "component": "database"}


@router.get("/redis")
def redis_health():
    # The change feed and notifications depend on it
    try:
        redis_client.ping()
    except Exception as e:
        logger.error(f"Redis check failed: {e}")
        raise ServiceUnavailableError("Redis unreachable", service="redis")
    return {"status": "healthy", "component": "redis"}


@router.get("/integrations")
def integrations_status():
    """Which outbound integrations have credentials. Does not call them."""
    return {
        "assistant": bool(settings.ANTHROPIC_API_KEY),
        "maps": bool(settings.GOOGLE_MAPS_API_KEY),
        "email": bool(settings.RESEND_API_KEY),
        "telegram": bool(settings.TELEGRAM_BOT_TOKEN),
        "click_webhooks": bool(settings.CLICK_SECRET_KEY),
        "payme_webhooks": bool(settings.PAYME_SECRET_KEY),
    }
