from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    # Email address or username
    login: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int


class UserResponse(BaseModel):
    id: str
    username: str
    email: str
    type: str
    supplier_id: Optional[str] = None
    is_active: bool
    created_at: str


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)
