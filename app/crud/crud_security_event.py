# app/crud/crud_security_event.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.models.security_event import SecurityEvent

logger = logging.getLogger(__name__)


def log_event(
    db: Session,
    *,
    event_type: str,
    user_id: Optional[str] = None,
    severity: str = "info",
    description: Optional[str] = None,
    ip_address: Optional[str] = None,
    metadata: Optional[dict] = None,
    commit: bool = True,
) -> SecurityEvent:
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        severity=severity,
        description=description,
        ip_address=ip_address,
        event_metadata=metadata,
    )
    db.add(event)
    if commit:
        db.commit()
        db.refresh(event)
    else:
        db.flush()

    if severity == "critical":
        logger.warning(f"Security event {event_type} for user {user_id}: {description}")
    return event
