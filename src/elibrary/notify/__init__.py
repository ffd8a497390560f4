"""Due-date reminders.

Provides functionality for:
- Sweeping active loans for reminders due two days and one day out
- Sending reminders by email (or to the log)
- Running the sweep daily in the background
"""

from .notifier import DueDateNotifier, reminder_due
from .scheduler import SWEEP_INTERVAL, NotifierScheduler, seconds_until_next_midnight
from .schemas import Recipient, SweepReport
from .sender import (
    LoggingReminderSender,
    ReminderSender,
    SmtpReminderSender,
    build_sender,
    render_reminder,
)

__all__ = [
    "DueDateNotifier",
    "reminder_due",
    "SWEEP_INTERVAL",
    "NotifierScheduler",
    "seconds_until_next_midnight",
    "Recipient",
    "SweepReport",
    "LoggingReminderSender",
    "ReminderSender",
    "SmtpReminderSender",
    "build_sender",
    "render_reminder",
]
