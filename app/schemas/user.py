from typing import Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field
from app.schemas.role import RoleResponse


class UserResponse(BaseModel):
    """Response schema for a user. The password hash is never exposed."""
    id: str
    username: str
    first_name: str
    last_name: str
    email: str
    mobile_number: Optional[str] = None
    is_active: bool
    password_expired: datetime
    role: Optional[RoleResponse] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserCreateRequest(BaseModel):
    """Request schema for creating a user."""
    username: str = Field(..., min_length=3, max_length=100, pattern=r"^[A-Za-z0-9._-]+$")
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    mobile_number: Optional[str] = Field(None, min_length=8, max_length=20, pattern=r"^\+?[0-9]+$")
    password: str = Field(..., min_length=8, max_length=72)
    role: str = Field(..., description="Role id")


class UserUpdateRequest(BaseModel):
    """Request schema for updating a user's name."""
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
