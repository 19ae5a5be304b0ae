"""User and auth payload models."""
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    """Registration payload."""

    email: EmailStr
    name: str
    password: str = Field(min_length=8)


class User(BaseModel):
    """Public view of a user (no password hash)."""

    id: str = Field(alias="_id", serialization_alias="id")
    email: EmailStr
    name: str
    created_at: datetime

    model_config = {"populate_by_name": True}


class LoginRequest(BaseModel):
    """Login credentials."""

    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Issued access token."""

    access_token: str
    token_type: str = "bearer"
