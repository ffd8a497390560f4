"""Pydantic schemas for book lending."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class LoanStatus(str, Enum):
    """Status of a loan."""

    ISSUED = "issued"
    RETURNED = "returned"


class ReminderOffset(int, Enum):
    """Days before the due date at which a reminder goes out."""

    TWO_DAYS = 2
    ONE_DAY = 1


class LoanPatch(BaseModel):
    """Fields the ledger may change on an existing loan. Unset fields are left alone."""

    status: Optional[LoanStatus] = None
    return_date: Optional[datetime] = None
    fine: Optional[int] = Field(None, ge=0)
    fine_paid: Optional[bool] = None
    reminder_two_days_sent: Optional[bool] = None
    reminder_one_day_sent: Optional[bool] = None


class LoanResponse(BaseModel):
    """Schema for loan responses."""

    id: str
    borrower_id: str
    book_id: str
    issue_date: datetime
    due_date: datetime
    return_date: Optional[datetime]
    status: LoanStatus
    fine: int
    fine_paid: bool
    reminder_two_days_sent: bool
    reminder_one_day_sent: bool

    # Related data (populated by the service)
    book_title: Optional[str] = None
    book_author: Optional[str] = None

    model_config = {"from_attributes": True}


class BorrowResult(BaseModel):
    """Outcome of a borrow: the new loan and when it is due."""

    loan: LoanResponse
    due_date: datetime


class ReturnResult(BaseModel):
    """Outcome of a return: the closed loan and the fine it accrued."""

    loan: LoanResponse
    fine: int
