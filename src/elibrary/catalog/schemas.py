"""Pydantic schemas for the book catalog."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _strip_required(v: str) -> str:
    """Reject values that are only whitespace."""
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


class BookBase(BaseModel):
    """Base book fields."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=500)
    description: str = Field("", max_length=10000)
    cover_image: Optional[str] = None
    isbn: str = Field(..., min_length=1, max_length=20)
    quantity: int = Field(1, ge=0)

    @field_validator("title", "author", "isbn")
    @classmethod
    def strip_required(cls, v: str) -> str:
        return _strip_required(v)


class BookCreate(BookBase):
    """Schema for adding a book to the catalog."""

    pass


class BookUpdate(BaseModel):
    """Schema for updating a book. Unset fields are left alone."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    author: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=10000)
    cover_image: Optional[str] = None
    isbn: Optional[str] = Field(None, min_length=1, max_length=20)
    quantity: Optional[int] = Field(None, ge=0)

    @field_validator("title", "author", "isbn")
    @classmethod
    def strip_provided(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _strip_required(v)


class BookResponse(BaseModel):
    """Schema for book responses."""

    id: str
    title: str
    author: str
    description: str
    cover_image: Optional[str]
    isbn: str
    quantity: int
    available: int
    created_at: datetime

    model_config = {"from_attributes": True}
