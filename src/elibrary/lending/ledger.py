"""Loan ledger: storage and queries for loan records.

The ledger enforces nothing beyond identity; business rules live in
``LendingService``. Every method takes an optional session so the service
can run several ledger and catalog calls as one transaction.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.sqlite import Database, get_db
from ..exceptions import ConflictError, NotFoundError
from ..utils import to_iso
from .models import Loan
from .schemas import LoanPatch, LoanStatus


class LoanLedger:
    """Owns loan records."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize loan ledger.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def _run(self, fn, session: Optional[Session], write: bool = False):
        """Run ``fn`` in the caller's session or a fresh one, detaching results."""
        if session:
            return fn(session)
        ctx = self.db.transaction() if write else self.db.get_session()
        with ctx as s:
            result = fn(s)
            if isinstance(result, Loan):
                s.expunge(result)
            elif isinstance(result, list):
                for loan in result:
                    s.expunge(loan)
            return result

    def create(self, loan: Loan, session: Optional[Session] = None) -> Loan:
        """Persist a new loan.

        Raises:
            ConflictError: A loan with this ID already exists
        """

        def _create(s: Session) -> Loan:
            if loan.id and s.get(Loan, loan.id) is not None:
                raise ConflictError(f"Loan {loan.id} already exists")
            s.add(loan)
            s.flush()
            return loan

        return self._run(_create, session, write=True)

    def get(self, loan_id: str, session: Optional[Session] = None) -> Loan:
        """Get a loan by ID.

        Raises:
            NotFoundError: No loan with that ID
        """

        def _get(s: Session) -> Loan:
            loan = s.get(Loan, loan_id)
            if loan is None:
                raise NotFoundError(f"Transaction not found: {loan_id}")
            return loan

        return self._run(_get, session)

    def find_active_by_borrower_and_book(
        self, borrower_id: str, book_id: str, session: Optional[Session] = None
    ) -> Optional[Loan]:
        """Get the borrower's issued loan for a book, or None."""

        def _find(s: Session) -> Optional[Loan]:
            stmt = select(Loan).where(
                Loan.borrower_id == borrower_id,
                Loan.book_id == book_id,
                Loan.status == LoanStatus.ISSUED.value,
            )
            return s.execute(stmt).scalar_one_or_none()

        return self._run(_find, session)

    def list_by_borrower(
        self,
        borrower_id: str,
        status: Optional[LoanStatus] = None,
        session: Optional[Session] = None,
    ) -> list[Loan]:
        """List a borrower's loans, most recent first.

        Args:
            borrower_id: Borrower ID
            status: Filter by status
            session: Session to run in

        Returns:
            List of loans
        """

        def _list(s: Session) -> list[Loan]:
            stmt = select(Loan).where(Loan.borrower_id == borrower_id)
            if status:
                stmt = stmt.where(Loan.status == status.value)
            stmt = stmt.order_by(Loan.issue_date.desc())
            return list(s.execute(stmt).scalars().all())

        return self._run(_list, session)

    def list_active(self, session: Optional[Session] = None) -> list[Loan]:
        """List every issued loan, soonest due first."""

        def _list(s: Session) -> list[Loan]:
            stmt = (
                select(Loan)
                .where(Loan.status == LoanStatus.ISSUED.value)
                .order_by(Loan.due_date)
            )
            return list(s.execute(stmt).scalars().all())

        return self._run(_list, session)

    def update(self, loan_id: str, patch: LoanPatch, session: Optional[Session] = None) -> Loan:
        """Apply the set fields of ``patch`` to a loan.

        Raises:
            NotFoundError: No loan with that ID
        """

        def _update(s: Session) -> Loan:
            loan = self.get(loan_id, session=s)
            for field, value in patch.model_dump(exclude_unset=True).items():
                if field == "status" and value is not None:
                    loan.status = value.value
                elif field == "return_date":
                    loan.return_date = to_iso(value) if value else None
                else:
                    setattr(loan, field, value)
            s.flush()
            return loan

        return self._run(_update, session, write=True)
