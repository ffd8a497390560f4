"""Due-date reminder sweep.

One sweep walks every issued loan and sends at most one reminder per
loan per offset:

- ``days_left = ceil((due - now) / 1 day)``
- 2 days left and the two-day flag unset: send, then set the flag
- 1 day left and the one-day flag unset: send, then set the flag

The match is on exact equality. A sweep that misses the day does not
catch up later, so sweeps must run at least once every 24 hours.
"""

import threading
from datetime import datetime
from typing import Optional

from ..catalog.store import CatalogStore
from ..db.sqlite import Database, get_db
from ..lending.ledger import LoanLedger
from ..lending.models import Loan
from ..lending.schemas import LoanPatch, ReminderOffset
from ..logging import get_logger
from ..users.manager import UserManager
from ..utils import Clock, ceil_days, utc_now
from .schemas import Recipient, SweepReport
from .sender import ReminderSender

logger = get_logger(__name__)

_FLAGS = {
    ReminderOffset.TWO_DAYS: "reminder_two_days_sent",
    ReminderOffset.ONE_DAY: "reminder_one_day_sent",
}


def reminder_due(loan: Loan, now: datetime) -> Optional[ReminderOffset]:
    """Which reminder, if any, this loan should get at ``now``."""
    days_left = ceil_days(loan.due_at - now)
    if days_left == ReminderOffset.TWO_DAYS and not loan.reminder_two_days_sent:
        return ReminderOffset.TWO_DAYS
    if days_left == ReminderOffset.ONE_DAY and not loan.reminder_one_day_sent:
        return ReminderOffset.ONE_DAY
    return None


class DueDateNotifier:
    """Sends due-date reminders for active loans."""

    def __init__(
        self,
        sender: ReminderSender,
        db: Optional[Database] = None,
        clock: Clock = utc_now,
    ):
        """Initialize notifier.

        Args:
            sender: Delivers the reminders
            db: Database instance
            clock: Returns the current time (aware datetime)
        """
        self.sender = sender
        self.db = db or get_db()
        self.clock = clock

        self.ledger = LoanLedger(self.db)
        self.catalog = CatalogStore(self.db)
        self.users = UserManager(self.db)

    def sweep(
        self,
        now: Optional[datetime] = None,
        cancel: Optional[threading.Event] = None,
    ) -> SweepReport:
        """Check every active loan once and send whatever reminders are due.

        A failure on one loan is logged and does not stop the others.
        ``cancel`` is honoured between loans, never in the middle of a send.

        Args:
            now: Time to evaluate against (defaults to the clock)
            cancel: Set to stop before the next loan

        Returns:
            SweepReport with counts
        """
        now = now or self.clock()
        report = SweepReport()

        for loan in self.ledger.list_active():
            if cancel is not None and cancel.is_set():
                report.cancelled = True
                logger.info("Reminder sweep cancelled after %d loans", report.checked)
                break

            report.checked += 1
            offset = reminder_due(loan, now)
            if offset is None:
                continue

            try:
                self._remind(loan, offset)
            except Exception:
                report.failed += 1
                logger.exception(
                    "Error sending %d-day reminder for loan %s", offset.value, loan.id,
                    extra={"loan_id": loan.id, "borrower_id": loan.borrower_id},
                )
            else:
                report.sent += 1

        logger.info(
            "Reminder sweep: %d checked, %d sent, %d failed",
            report.checked, report.sent, report.failed,
        )
        return report

    def _remind(self, loan: Loan, offset: ReminderOffset) -> None:
        """Send one reminder and record it on the loan."""
        borrower = self.users.get_user(loan.borrower_id)
        book = self.catalog.get(loan.book_id)

        self.sender.send_reminder(
            Recipient(name=borrower.name, email=borrower.email),
            book.title,
            book.author,
            loan.due_at,
            offset.value,
        )
        self.ledger.update(loan.id, LoanPatch(**{_FLAGS[offset]: True}))
        logger.debug(
            "Loan %s: %d-day reminder recorded", loan.id, offset.value,
            extra={"loan_id": loan.id, "borrower_id": loan.borrower_id},
        )
