# app/schemas/rating.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class RatingCreate(BaseModel):
    score: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class Rating(BaseModel):
    id: str
    deal_id: str
    rater_id: str
    rated_id: str
    score: int
    comment: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class RatingSummary(BaseModel):
    user_id: str
    average: Optional[float] = None
    count: int
