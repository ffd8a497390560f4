"""Pydantic schemas for users."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class Role(str, Enum):
    """What a user may do."""

    USER = "user"
    ADMIN = "admin"


class UserCreate(BaseModel):
    """Schema for registering a user."""

    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=200)
    role: Role = Role.USER

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Lowercase and sanity-check the address."""
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("invalid email address")
        return v


class UserResponse(BaseModel):
    """Schema for user responses."""

    id: str
    name: str
    email: str
    role: Role
    created_at: datetime

    model_config = {"from_attributes": True}
