# app/schemas/token.py
from pydantic import BaseModel
from typing import Optional


class TokenPayload(BaseModel):
    sub: str  # "sub" is the standard claim for subject (user ID)
    role: str = "client"  # client | carrier | admin
    exp: Optional[int] = None  # Standard claim for expiration time

    model_config = {
        "from_attributes": True,
    }

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class AccessToken(BaseModel):
    access_token: str
    token_type: str = "bearer"
