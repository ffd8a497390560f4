"""SQLAlchemy model for loan transactions.

Tables:
- loans: One row per copy checked out, kept forever as history
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid
from ..utils import from_iso
from .schemas import LoanStatus


class Loan(Base):
    """Loan model - one book checked out by one borrower."""

    __tablename__ = "loans"
    __table_args__ = (
        CheckConstraint("fine >= 0", name="ck_loans_fine"),
        CheckConstraint("status IN ('issued', 'returned')", name="ck_loans_status"),
        # A borrower holds at most one active loan per book
        Index(
            "uq_loans_active_borrower_book",
            "borrower_id",
            "book_id",
            unique=True,
            sqlite_where=text("status = 'issued'"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    # Non-owning references by identity
    borrower_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    book_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # Dates (ISO-8601, UTC)
    issue_date: Mapped[str] = mapped_column(String(32), nullable=False)
    due_date: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    return_date: Mapped[Optional[str]] = mapped_column(String(32))

    status: Mapped[str] = mapped_column(
        String(20), default=LoanStatus.ISSUED.value, index=True
    )

    # Fine in whole currency units
    fine: Mapped[int] = mapped_column(Integer, default=0)
    fine_paid: Mapped[bool] = mapped_column(Boolean, default=False)

    # Reminder flags
    reminder_two_days_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    reminder_one_day_sent: Mapped[bool] = mapped_column(Boolean, default=False)

    def __repr__(self) -> str:
        return f"<Loan(id={self.id}, book_id={self.book_id}, status={self.status})>"

    @property
    def issued_at(self) -> datetime:
        return from_iso(self.issue_date)

    @property
    def due_at(self) -> datetime:
        return from_iso(self.due_date)

    @property
    def returned_at(self) -> Optional[datetime]:
        return from_iso(self.return_date)

    @property
    def is_active(self) -> bool:
        """Check if the copy is still out."""
        return self.status == LoanStatus.ISSUED.value
