# app/api/v1/endpoints/favorites.py
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app import crud
from app.api import deps
from app.db.session import get_db
from app.schemas.favorite import Favorite, FavoriteCreate
from app.schemas.token import TokenPayload

router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.get("", response_model=List[Favorite])
def list_favorites(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud.favorite_carrier.get_multi_by_client(db, client_id=current_user.sub)


@router.post("", response_model=Favorite, status_code=status.HTTP_201_CREATED)
def add_favorite(
    favorite_in: FavoriteCreate,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud.favorite_carrier.add(db, client_id=current_user.sub, obj_in=favorite_in)


@router.delete("/{carrier_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_favorite(
    carrier_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    crud.favorite_carrier.remove_for_client(
        db, client_id=current_user.sub, carrier_id=carrier_id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
