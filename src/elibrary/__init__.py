"""elibrary - library management backend.

Book catalog, borrow/return transactions, late fines and due-date
email reminders behind a small REST API.
"""

__version__ = "0.1.0"
