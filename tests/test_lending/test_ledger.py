"""Tests for LoanLedger."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from elibrary.db.sqlite import Database
from elibrary.exceptions import ConflictError, NotFoundError, StorageError
from elibrary.lending.ledger import LoanLedger
from elibrary.lending.models import Loan
from elibrary.lending.schemas import LoanPatch, LoanStatus
from elibrary.utils import to_iso

ISSUED = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def ledger(db: Database) -> LoanLedger:
    """Create a LoanLedger with test database."""
    return LoanLedger(db)


def make_loan(borrower_id="alice", book_id="book-1", issued=ISSUED, **kwargs) -> Loan:
    return Loan(
        borrower_id=borrower_id,
        book_id=book_id,
        issue_date=to_iso(issued),
        due_date=to_iso(issued + timedelta(days=14)),
        **kwargs,
    )


class TestCreate:
    """Tests for persisting loans."""

    def test_create_sets_defaults(self, ledger: LoanLedger):
        loan = ledger.create(make_loan())

        assert loan.id is not None
        assert loan.status == LoanStatus.ISSUED.value
        assert loan.fine == 0
        assert loan.fine_paid is False
        assert loan.reminder_two_days_sent is False
        assert loan.reminder_one_day_sent is False
        assert loan.is_active

    def test_dates_round_trip_as_aware_datetimes(self, ledger: LoanLedger):
        loan = ledger.get(ledger.create(make_loan()).id)
        assert loan.issued_at == ISSUED
        assert loan.due_at == ISSUED + timedelta(days=14)
        assert loan.returned_at is None

    def test_duplicate_id_rejected(self, ledger: LoanLedger):
        loan = ledger.create(make_loan())
        with pytest.raises(ConflictError):
            ledger.create(make_loan(id=loan.id, book_id="book-2"))

    def test_second_active_loan_for_same_book_violates_index(self, db: Database, ledger):
        ledger.create(make_loan())
        with pytest.raises(StorageError) as excinfo:
            with db.get_session() as session:
                ledger.create(make_loan(), session=session)
        assert isinstance(excinfo.value.__cause__, IntegrityError)

    def test_returned_loan_does_not_block_new_one(self, ledger: LoanLedger):
        first = ledger.create(make_loan())
        ledger.update(first.id, LoanPatch(status=LoanStatus.RETURNED))
        second = ledger.create(make_loan())
        assert second.id != first.id


class TestQueries:
    """Tests for finding and listing loans."""

    def test_get_missing(self, ledger: LoanLedger):
        with pytest.raises(NotFoundError):
            ledger.get("no-such-loan")

    def test_find_active_by_borrower_and_book(self, ledger: LoanLedger):
        loan = ledger.create(make_loan())

        assert ledger.find_active_by_borrower_and_book("alice", "book-1").id == loan.id
        assert ledger.find_active_by_borrower_and_book("alice", "book-2") is None
        assert ledger.find_active_by_borrower_and_book("bob", "book-1") is None

    def test_find_ignores_returned(self, ledger: LoanLedger):
        loan = ledger.create(make_loan())
        ledger.update(loan.id, LoanPatch(status=LoanStatus.RETURNED))
        assert ledger.find_active_by_borrower_and_book("alice", "book-1") is None

    def test_list_by_borrower_newest_first(self, ledger: LoanLedger):
        old = ledger.create(make_loan(book_id="book-1"))
        new = ledger.create(make_loan(book_id="book-2", issued=ISSUED + timedelta(days=1)))
        ledger.create(make_loan(borrower_id="bob"))

        assert [loan.id for loan in ledger.list_by_borrower("alice")] == [new.id, old.id]

    def test_list_by_borrower_with_status(self, ledger: LoanLedger):
        done = ledger.create(make_loan(book_id="book-1"))
        out = ledger.create(make_loan(book_id="book-2"))
        ledger.update(done.id, LoanPatch(status=LoanStatus.RETURNED))

        issued = ledger.list_by_borrower("alice", status=LoanStatus.ISSUED)
        returned = ledger.list_by_borrower("alice", status=LoanStatus.RETURNED)
        assert [loan.id for loan in issued] == [out.id]
        assert [loan.id for loan in returned] == [done.id]

    def test_list_active_soonest_due_first(self, ledger: LoanLedger):
        later = ledger.create(make_loan(book_id="book-1", issued=ISSUED + timedelta(days=2)))
        sooner = ledger.create(make_loan(book_id="book-2"))
        returned = ledger.create(make_loan(book_id="book-3"))
        ledger.update(returned.id, LoanPatch(status=LoanStatus.RETURNED))

        assert [loan.id for loan in ledger.list_active()] == [sooner.id, later.id]


class TestUpdate:
    """Tests for patching loans."""

    def test_update_only_touches_set_fields(self, ledger: LoanLedger):
        loan = ledger.create(make_loan())
        returned_at = ISSUED + timedelta(days=16)

        updated = ledger.update(
            loan.id,
            LoanPatch(status=LoanStatus.RETURNED, return_date=returned_at, fine=10),
        )

        assert updated.status == "returned"
        assert updated.returned_at == returned_at
        assert updated.fine == 10
        assert updated.fine_paid is False
        assert updated.due_at == loan.due_at

    def test_set_reminder_flag(self, ledger: LoanLedger):
        loan = ledger.create(make_loan())
        ledger.update(loan.id, LoanPatch(reminder_two_days_sent=True))

        stored = ledger.get(loan.id)
        assert stored.reminder_two_days_sent is True
        assert stored.reminder_one_day_sent is False

    def test_update_missing(self, ledger: LoanLedger):
        with pytest.raises(NotFoundError):
            ledger.update("no-such-loan", LoanPatch(fine_paid=True))
