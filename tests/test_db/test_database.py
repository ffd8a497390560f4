"""Tests for database setup and transactions."""

import pytest
from sqlalchemy import inspect, select, text

from elibrary.catalog.models import Book
from elibrary.catalog.store import CatalogStore
from elibrary.db.sqlite import Database, get_db, reset_db
from elibrary.exceptions import NotFoundError, StorageError


class TestDatabaseCreation:
    """Tests for database initialization."""

    def test_database_creates_tables(self, db: Database):
        tables = set(inspect(db.engine).get_table_names())
        assert {"books", "loans", "users"} <= tables

    def test_database_path_created(self, file_db: Database):
        assert file_db.db_path.exists()

    def test_env_path(self, env_db_path):
        database = Database()
        assert database.db_path == env_db_path
        database.dispose()

    def test_global_db(self, env_db_path):
        first = get_db(str(env_db_path))
        assert get_db() is first
        reset_db()
        assert get_db(str(env_db_path)) is not first


class TestTransaction:
    """Tests for Database.transaction."""

    def test_commits(self, db: Database):
        with db.transaction() as session:
            session.add(Book(title="T", author="A", isbn="1"))

        with db.get_session() as session:
            assert session.execute(select(Book)).scalar_one().isbn == "1"

    def test_library_error_rolls_back(self, db: Database):
        with pytest.raises(NotFoundError):
            with db.transaction() as session:
                session.add(Book(title="T", author="A", isbn="1"))
                session.flush()
                raise NotFoundError("gone")

        with db.get_session() as session:
            assert session.execute(select(Book)).first() is None

    def test_storage_failure_becomes_storage_error(self, db: Database):
        with pytest.raises(StorageError):
            with db.transaction() as session:
                session.execute(text("SELECT * FROM no_such_table"))

    def test_available_constraint_enforced(self, db: Database):
        with pytest.raises(StorageError):
            with db.transaction() as session:
                session.add(Book(title="T", author="A", isbn="1", quantity=1, available=2))


class TestSession:
    """Tests for Database.get_session."""

    def test_storage_failure_becomes_storage_error(self, db: Database):
        with pytest.raises(StorageError):
            with db.get_session() as session:
                session.execute(text("SELECT * FROM no_such_table"))

    def test_read_against_missing_tables(self, db: Database):
        db.drop_tables()
        with pytest.raises(StorageError):
            CatalogStore(db).list_books()

    def test_library_error_passes_through(self, db: Database):
        with pytest.raises(NotFoundError):
            with db.get_session():
                raise NotFoundError("gone")
