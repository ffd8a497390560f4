"""SQLAlchemy model for the book catalog.

Tables:
- books: One row per title, with copy counters
"""

from typing import Any, Optional

from sqlalchemy import CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, timestamp_now

DEFAULT_COVER_IMAGE = "https://images.pexels.com/photos/1029141/pexels-photo-1029141.jpeg"


class Book(Base):
    """Book model - a catalog title and how many copies are on the shelf."""

    __tablename__ = "books"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_books_quantity"),
        CheckConstraint(
            "available >= 0 AND available <= quantity", name="ck_books_available"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, default="")
    cover_image: Mapped[Optional[str]] = mapped_column(Text, default=DEFAULT_COVER_IMAGE)
    isbn: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    # Copy counters
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    available: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[str] = mapped_column(String(32), default=timestamp_now)

    def __init__(self, **kwargs: Any):
        # A new book starts with every copy on the shelf
        quantity = kwargs.setdefault("quantity", 1)
        kwargs.setdefault("available", quantity)
        kwargs.setdefault("cover_image", DEFAULT_COVER_IMAGE)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, isbn='{self.isbn}', available={self.available}/{self.quantity})>"

    @property
    def on_loan(self) -> int:
        """Copies currently lent out."""
        return self.quantity - self.available
