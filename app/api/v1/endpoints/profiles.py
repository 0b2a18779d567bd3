# app/api/v1/endpoints/profiles.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api import deps
from app.db.session import get_db
from app.core.exceptions import NotFoundError
from app.crud import crud_profile
from app.schemas.profile import Profile, ProfileUpdate
from app.schemas.token import TokenPayload

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.get("/me", response_model=Profile)
def get_my_profile(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    profile = crud_profile.get_by_user_id(db, current_user.sub)
    if not profile:
        raise NotFoundError("Profile", current_user.sub)
    return profile


@router.put("/me", response_model=Profile)
def update_my_profile(
    profile_in: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Create the profile on first save; the role always comes from the token."""
    return crud_profile.upsert(
        db, user_id=current_user.sub, role=current_user.role, obj_in=profile_in
    )


@router.get("/{user_id}", response_model=Profile)
def get_profile(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    profile = crud_profile.get_by_user_id(db, user_id)
    if not profile:
        raise NotFoundError("Profile", user_id)
    return profile
