"""Pydantic schemas for integration credential endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

PLATFORM_PATTERN = r"^[a-z0-9][a-z0-9_]{1,49}$"


class CredentialInput(BaseModel):
    platform: str = Field(..., pattern=PLATFORM_PATTERN)
    api_key: Optional[str] = Field(None, max_length=2000)
    api_secret: Optional[str] = Field(None, max_length=2000)
    access_token: Optional[str] = Field(None, max_length=4000)
    is_active: bool = True


class CredentialActiveUpdate(BaseModel):
    is_active: bool


class CredentialResponse(BaseModel):
    """Secrets are masked unless the caller asked to reveal them."""
    id: str
    platform: str
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    access_token: Optional[str] = None
    is_active: bool
    last_sync_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class CredentialSavedResponse(BaseModel):
    id: str
    platform: str
    is_active: bool
    last_sync_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
