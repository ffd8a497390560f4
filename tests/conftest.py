"""Pytest configuration and shared fixtures.

This module provides fixtures for testing elibrary, including in-memory
and file-backed databases, sample members and books, a controllable
clock and reminder senders that record or fail.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest

from elibrary.catalog.schemas import BookCreate
from elibrary.catalog.store import CatalogStore
from elibrary.config import reset_config
from elibrary.db.sqlite import Database, reset_db
from elibrary.lending.service import LendingService
from elibrary.notify.schemas import Recipient
from elibrary.users.manager import UserManager
from elibrary.users.schemas import Role, UserCreate


# ============================================================================
# Test Doubles
# ============================================================================


class FakeClock:
    """A clock the test moves by hand."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> None:
        self.now = value


class RecordingSender:
    """Reminder sender that remembers what it was asked to send."""

    def __init__(self):
        self.sent: list[dict] = []

    def send_reminder(self, contact: Recipient, book_title, book_author, due_date, days_left):
        self.sent.append({
            "email": contact.email,
            "name": contact.name,
            "title": book_title,
            "author": book_author,
            "due_date": due_date,
            "days_left": days_left,
        })


class FailingSender(RecordingSender):
    """Fails for one address, records the rest."""

    def __init__(self, fail_for: str):
        super().__init__()
        self.fail_for = fail_for

    def send_reminder(self, contact: Recipient, book_title, book_author, due_date, days_left):
        if contact.email == self.fail_for:
            raise ConnectionError("SMTP connection refused")
        super().send_reminder(contact, book_title, book_author, due_date, days_left)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_globals() -> Generator[None, None, None]:
    """Keep global config and database instances from leaking between tests."""
    reset_db()
    reset_config()
    yield
    reset_db()
    reset_config()


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture(scope="function")
def db() -> Database:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    return database


@pytest.fixture(scope="function")
def file_db(temp_db_path: Path) -> Generator[Database, None, None]:
    """Create a file-backed database (needed when several threads connect)."""
    database = Database(str(temp_db_path))
    database.create_tables()
    yield database
    database.dispose()


@pytest.fixture
def env_db_path(temp_db_path: Path) -> Generator[Path, None, None]:
    """Point ELIBRARY_DB_PATH at a temporary file."""
    os.environ["ELIBRARY_DB_PATH"] = str(temp_db_path)
    yield temp_db_path
    del os.environ["ELIBRARY_DB_PATH"]


# ============================================================================
# Clock
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    """A clock starting at 2025-01-01 09:00 UTC."""
    return FakeClock(datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc))


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def catalog(db: Database) -> CatalogStore:
    return CatalogStore(db)


@pytest.fixture
def users(db: Database) -> UserManager:
    return UserManager(db)


@pytest.fixture
def service(db: Database, clock: FakeClock) -> LendingService:
    """Lending service with a 14-day loan period and a fine of 5 per day."""
    return LendingService(db, clock=clock, lending_days=14, fine_per_day=5)


@pytest.fixture
def sample_book_data() -> BookCreate:
    """Create sample book data for testing."""
    return BookCreate(
        title="The Great Gatsby",
        author="F. Scott Fitzgerald",
        description="A novel of the Jazz Age.",
        isbn="9780743273565",
        quantity=3,
    )


@pytest.fixture
def sample_book(catalog: CatalogStore, sample_book_data: BookCreate):
    """A catalog title with three copies."""
    return catalog.create(sample_book_data)


@pytest.fixture
def single_copy_book(catalog: CatalogStore):
    """A catalog title with exactly one copy."""
    return catalog.create(
        BookCreate(title="Dune", author="Frank Herbert", isbn="9780441172719", quantity=1)
    )


@pytest.fixture
def member(users: UserManager):
    """A regular borrower."""
    return users.create_user(UserCreate(name="Alice Reader", email="alice@example.com"))


@pytest.fixture
def other_member(users: UserManager):
    """A second borrower."""
    return users.create_user(UserCreate(name="Bob Borrower", email="bob@example.com"))


@pytest.fixture
def admin(users: UserManager):
    """The library admin."""
    return users.create_user(
        UserCreate(name="Libby Admin", email="admin@example.com", role=Role.ADMIN)
    )


@pytest.fixture
def recording_sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def failing_sender() -> FailingSender:
    """Sender whose transport fails for bob@example.com."""
    return FailingSender(fail_for="bob@example.com")
