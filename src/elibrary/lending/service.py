"""Lending service: borrow, return and fine payment.

Each operation reads and writes the catalog and the ledger inside one
``Database.transaction()``, so the availability counter and the loan
status always move together.
"""

from datetime import timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..catalog.models import Book
from ..catalog.store import CatalogStore
from ..config import get_config
from ..db.sqlite import Database, get_db
from ..exceptions import (
    AlreadyPaidError,
    ConflictError,
    InvalidStateError,
    NoFineError,
    UnavailableError,
)
from ..logging import get_logger
from ..users.manager import UserManager
from ..utils import Clock, to_iso, utc_now
from .fines import calculate_fine
from .ledger import LoanLedger
from .models import Loan
from .schemas import BorrowResult, LoanPatch, LoanResponse, LoanStatus, ReturnResult

logger = get_logger(__name__)


class LendingService:
    """Orchestrates lending against the catalog and the loan ledger."""

    def __init__(
        self,
        db: Optional[Database] = None,
        clock: Clock = utc_now,
        lending_days: Optional[int] = None,
        fine_per_day: Optional[int] = None,
    ):
        """Initialize lending service.

        Args:
            db: Database instance
            clock: Returns the current time (aware datetime)
            lending_days: Loan period; defaults to config
            fine_per_day: Late fee per day; defaults to config
        """
        self.db = db or get_db()
        self.clock = clock
        config = get_config() if lending_days is None or fine_per_day is None else None
        self.lending_days = lending_days if lending_days is not None else config.lending_days
        self.fine_per_day = fine_per_day if fine_per_day is not None else config.fine_per_day

        self.catalog = CatalogStore(self.db)
        self.ledger = LoanLedger(self.db)
        self.users = UserManager(self.db)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def borrow(self, borrower_id: str, book_id: str) -> BorrowResult:
        """Check a copy of a book out to a borrower.

        Args:
            borrower_id: User ID of the borrower
            book_id: Book ID

        Returns:
            BorrowResult with the new loan and its due date

        Raises:
            NotFoundError: Book or borrower does not exist
            UnavailableError: No copies left
            ConflictError: Borrower already has this book
        """
        now = self.clock()

        with self.db.transaction() as session:
            book = self.catalog.get(book_id, session=session)
            self.users.get_user(borrower_id, session=session)

            if book.available <= 0:
                raise UnavailableError(f"Book is not available: {book.title}")

            if self.ledger.find_active_by_borrower_and_book(
                borrower_id, book_id, session=session
            ):
                raise ConflictError("You already have this book")

            loan = Loan(
                borrower_id=borrower_id,
                book_id=book_id,
                issue_date=to_iso(now),
                due_date=to_iso(now + timedelta(days=self.lending_days)),
                status=LoanStatus.ISSUED.value,
                fine=0,
                fine_paid=False,
                reminder_two_days_sent=False,
                reminder_one_day_sent=False,
            )
            try:
                self.ledger.create(loan, session=session)
            except IntegrityError as e:
                raise ConflictError("You already have this book") from e

            book = self.catalog.adjust_availability(book_id, -1, session=session)
            response = self._to_response(loan, book)

        logger.info(
            "Issued book %s to %s (loan %s, due %s)",
            book_id, borrower_id, response.id, response.due_date.isoformat(),
            extra={"loan_id": response.id, "book_id": book_id, "borrower_id": borrower_id},
        )
        return BorrowResult(loan=response, due_date=response.due_date)

    def return_loan(self, loan_id: str) -> ReturnResult:
        """Check a copy back in and work out the late fine.

        Args:
            loan_id: Loan ID

        Returns:
            ReturnResult with the closed loan and its fine

        Raises:
            NotFoundError: No such loan
            InvalidStateError: Loan was already returned
        """
        now = self.clock()

        with self.db.transaction() as session:
            loan = self.ledger.get(loan_id, session=session)
            if loan.status == LoanStatus.RETURNED.value:
                raise InvalidStateError("Book already returned")

            fine = calculate_fine(loan.due_at, now, self.fine_per_day)
            loan = self.ledger.update(
                loan_id,
                LoanPatch(status=LoanStatus.RETURNED, return_date=now, fine=fine),
                session=session,
            )
            book = self.catalog.return_copy(loan.book_id, session=session)
            response = self._to_response(loan, book)

        context = {
            "loan_id": loan_id,
            "book_id": response.book_id,
            "borrower_id": response.borrower_id,
        }
        if fine:
            logger.info("Loan %s returned late, fine %d", loan_id, fine, extra=context)
        else:
            logger.info("Loan %s returned on time", loan_id, extra=context)
        return ReturnResult(loan=response, fine=fine)

    def pay_fine(self, loan_id: str) -> LoanResponse:
        """Mark a loan's fine as paid.

        Raises:
            NotFoundError: No such loan
            NoFineError: The loan has no fine
            AlreadyPaidError: The fine was already paid
        """
        with self.db.transaction() as session:
            loan = self.ledger.get(loan_id, session=session)
            if loan.fine <= 0:
                raise NoFineError("No fine to pay")
            if loan.fine_paid:
                raise AlreadyPaidError("Fine already paid")

            loan = self.ledger.update(loan_id, LoanPatch(fine_paid=True), session=session)
            book = session.get(Book, loan.book_id)
            response = self._to_response(loan, book)

        logger.info(
            "Fine of %d paid on loan %s", response.fine, loan_id,
            extra={"loan_id": loan_id, "borrower_id": response.borrower_id},
        )
        return response

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_loan(self, loan_id: str) -> LoanResponse:
        """Get one loan with its book details.

        Raises:
            NotFoundError: No such loan
        """
        loan = self.ledger.get(loan_id)
        return self._with_books([loan])[0]

    def list_active_for_borrower(self, borrower_id: str) -> list[LoanResponse]:
        """Books the borrower currently has out (pending returns)."""
        loans = self.ledger.list_by_borrower(borrower_id, status=LoanStatus.ISSUED)
        return self._with_books(loans)

    def list_history_for_borrower(self, borrower_id: str) -> list[LoanResponse]:
        """Every loan the borrower ever had, most recent first."""
        loans = self.ledger.list_by_borrower(borrower_id)
        return self._with_books(loans)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _with_books(self, loans: list[Loan]) -> list[LoanResponse]:
        """Attach book title and author to each loan."""
        book_ids = {loan.book_id for loan in loans}
        books: dict[str, Book] = {}
        if book_ids:
            with self.db.get_session() as session:
                for book in session.execute(
                    select(Book).where(Book.id.in_(book_ids))
                ).scalars():
                    books[book.id] = book
                    session.expunge(book)
        return [self._to_response(loan, books.get(loan.book_id)) for loan in loans]

    @staticmethod
    def _to_response(loan: Loan, book: Optional[Book]) -> LoanResponse:
        response = LoanResponse.model_validate(loan)
        if book is not None:
            response = response.model_copy(
                update={"book_title": book.title, "book_author": book.author}
            )
        return response
