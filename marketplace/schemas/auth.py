from typing import Optional
from pydantic import BaseModel, Field


class SignInRequest(BaseModel):
    email: str
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    user_id: str
    email: Optional[str] = None
