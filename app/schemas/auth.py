from typing import Optional
from pydantic import BaseModel, Field
from app.core.constants import AccessFor


class LoginRequest(BaseModel):
    """Request schema for username/password login."""
    username: str
    password: str
    remember_me: bool = False


class TokenResponse(BaseModel):
    """Response schema for login and refresh."""
    token_type: str = "Bearer"
    access_for: AccessFor
    expires_in: int  # seconds until the access token expires
    access_token: str
    refresh_token: str
    password_expired: bool = False
    code: Optional[int] = None  # USER_PASSWORD_EXPIRED_ERROR when the password must be changed


class ChangePasswordRequest(BaseModel):
    """Request schema for changing the current user's password."""
    old_password: str
    new_password: str = Field(..., min_length=8, max_length=72)
