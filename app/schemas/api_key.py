from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ApiKeyResponse(BaseModel):
    """Response schema for an API key. Secrets and encryption material are never exposed."""
    id: str
    name: str
    description: Optional[str] = None
    key: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ApiKeyCreateRequest(BaseModel):
    """Request schema for creating an API key."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class ApiKeyUpdateRequest(BaseModel):
    """Request schema for renaming an API key."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class ApiKeyCreateResponse(BaseModel):
    """
    Response schema for API key creation and secret reset.

    The secret is only returned here; the server keeps a hash of it.
    """
    id: str
    key: str
    secret: str
    encryption_key: str
    passphrase: str
