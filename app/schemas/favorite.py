# app/schemas/favorite.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class FavoriteCreate(BaseModel):
    carrier_id: str
    note: Optional[str] = Field(None, max_length=500)


class Favorite(BaseModel):
    id: str
    client_id: str
    carrier_id: str
    note: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
