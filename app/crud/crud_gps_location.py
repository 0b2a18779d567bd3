# app/crud/crud_gps_location.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.gps_location import GpsLocation
from app.schemas.tracking import LocationReport


def record(
    db: Session, *, deal_id: str, carrier_id: str, report: LocationReport
) -> GpsLocation:
    """One row per report. Heartbeats repeat positions on purpose."""
    location = GpsLocation(deal_id=deal_id, carrier_id=carrier_id, **report.model_dump())
    db.add(location)
    db.commit()
    db.refresh(location)
    return location


def get_track(
    db: Session, deal_id: str, since: Optional[datetime] = None, limit: int = 1000
) -> List[GpsLocation]:
    query = db.query(GpsLocation).filter(GpsLocation.deal_id == deal_id)
    if since:
        query = query.filter(GpsLocation.recorded_at >= since)
    return query.order_by(GpsLocation.recorded_at.asc()).limit(limit).all()


def get_latest(db: Session, deal_id: str) -> Optional[GpsLocation]:
    return (
        db.query(GpsLocation)
        .filter(GpsLocation.deal_id == deal_id)
        .order_by(GpsLocation.recorded_at.desc())
        .first()
    )


def purge_older_than(db: Session, cutoff: datetime) -> int:
    deleted = (
        db.query(GpsLocation)
        .filter(GpsLocation.recorded_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
