"""Book lending module.

Provides functionality for:
- Loan records (issue, due and return dates)
- Borrowing and returning copies
- Late fines and fine payment
"""

from .fines import calculate_fine, days_late
from .ledger import LoanLedger
from .models import Loan
from .schemas import (
    BorrowResult,
    LoanPatch,
    LoanResponse,
    LoanStatus,
    ReminderOffset,
    ReturnResult,
)
from .service import LendingService

__all__ = [
    "calculate_fine",
    "days_late",
    "LoanLedger",
    "Loan",
    "BorrowResult",
    "LoanPatch",
    "LoanResponse",
    "LoanStatus",
    "ReminderOffset",
    "ReturnResult",
    "LendingService",
]
