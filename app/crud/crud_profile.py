# app/crud/crud_profile.py
import re
from typing import List, Optional

from sqlalchemy.orm import Session

from app.crud import crud_referral
from app.models.profile import Profile
from app.schemas.profile import ProfileUpdate


def normalize_phone(phone: str) -> str:
    """Digits only, so '+998 90 123-45-67' and '998901234567' compare equal."""
    return re.sub(r"\D", "", phone or "")


def get_by_user_id(db: Session, user_id: str) -> Optional[Profile]:
    return db.query(Profile).filter(Profile.user_id == user_id).first()


def get_by_phone(db: Session, phone: str) -> Optional[Profile]:
    digits = normalize_phone(phone)
    if not digits:
        return None
    return db.query(Profile).filter(Profile.phone == digits).first()


def list_carrier_ids(db: Session) -> List[str]:
    rows = db.query(Profile.user_id).filter(Profile.role == "carrier").all()
    return [row.user_id for row in rows]


def upsert(db: Session, *, user_id: str, role: str, obj_in: ProfileUpdate) -> Profile:
    profile = get_by_user_id(db, user_id)
    if profile is None:
        profile = Profile(
            user_id=user_id, role=role, referral_code=crud_referral.generate_code(role)
        )
        db.add(profile)

    update_data = obj_in.model_dump(exclude_unset=True, mode="json")
    if "phone" in update_data and update_data["phone"] is not None:
        update_data["phone"] = normalize_phone(update_data["phone"])
    for field, value in update_data.items():
        setattr(profile, field, value)

    db.commit()
    db.refresh(profile)
    return profile
