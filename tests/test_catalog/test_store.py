"""Tests for CatalogStore."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from elibrary.catalog.models import DEFAULT_COVER_IMAGE, Book
from elibrary.catalog.schemas import BookCreate, BookUpdate
from elibrary.catalog.store import CatalogStore
from elibrary.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


class TestBookModel:
    """Tests for the Book model defaults."""

    def test_available_starts_at_quantity(self):
        book = Book(title="T", author="A", isbn="1", quantity=4)
        assert book.available == 4
        assert book.on_loan == 0

    def test_default_quantity_and_cover(self):
        book = Book(title="T", author="A", isbn="1")
        assert book.quantity == 1
        assert book.available == 1
        assert book.cover_image == DEFAULT_COVER_IMAGE


class TestCreate:
    """Tests for adding titles."""

    def test_create_book(self, catalog: CatalogStore, sample_book_data: BookCreate):
        book = catalog.create(sample_book_data)

        assert book.id is not None
        assert book.title == "The Great Gatsby"
        assert book.quantity == 3
        assert book.available == 3
        assert book.cover_image == DEFAULT_COVER_IMAGE
        assert book.created_at

    def test_create_with_cover_image(self, catalog: CatalogStore):
        book = catalog.create(
            BookCreate(title="T", author="A", isbn="42", cover_image="https://example.com/c.jpg")
        )
        assert book.cover_image == "https://example.com/c.jpg"

    def test_duplicate_isbn_rejected(self, catalog: CatalogStore, sample_book):
        with pytest.raises(ValidationError):
            catalog.create(
                BookCreate(title="Other", author="Someone", isbn=sample_book.isbn)
            )
        assert catalog.count() == 1

    def test_blank_title_rejected(self):
        with pytest.raises(PydanticValidationError):
            BookCreate(title="   ", author="A", isbn="1")

    def test_negative_quantity_rejected(self):
        with pytest.raises(PydanticValidationError):
            BookCreate(title="T", author="A", isbn="1", quantity=-1)


class TestQueries:
    """Tests for reading the catalog."""

    def test_get(self, catalog: CatalogStore, sample_book):
        book = catalog.get(sample_book.id)
        assert book.isbn == "9780743273565"

    def test_get_missing(self, catalog: CatalogStore):
        with pytest.raises(NotFoundError):
            catalog.get("no-such-book")

    def test_find_by_isbn(self, catalog: CatalogStore, sample_book):
        assert catalog.find_by_isbn("9780743273565").id == sample_book.id
        assert catalog.find_by_isbn("0000000000") is None

    def test_list_books(self, catalog: CatalogStore, sample_book, single_copy_book):
        books = catalog.list_books()
        assert {b.id for b in books} == {sample_book.id, single_copy_book.id}

    def test_list_books_search(self, catalog: CatalogStore, sample_book, single_copy_book):
        assert [b.id for b in catalog.list_books(search="herbert")] == [single_copy_book.id]
        assert [b.id for b in catalog.list_books(search="GATSBY")] == [sample_book.id]
        assert catalog.list_books(search="nothing like this") == []

    def test_count(self, catalog: CatalogStore, sample_book, single_copy_book):
        assert catalog.count() == 2


class TestUpdate:
    """Tests for editing titles."""

    def test_update_fields(self, catalog: CatalogStore, sample_book):
        book = catalog.update(sample_book.id, BookUpdate(title="Gatsby", description="New"))
        assert book.title == "Gatsby"
        assert book.description == "New"
        assert book.author == "F. Scott Fitzgerald"

    def test_update_missing(self, catalog: CatalogStore):
        with pytest.raises(NotFoundError):
            catalog.update("no-such-book", BookUpdate(title="X"))

    def test_blank_title_rejected(self):
        with pytest.raises(PydanticValidationError):
            BookUpdate(title="   ")

    def test_padded_values_stripped(self, catalog: CatalogStore, sample_book):
        assert BookUpdate(isbn=" 123 ").isbn == "123"

        book = catalog.update(sample_book.id, BookUpdate(author="  F. Scott  "))
        assert book.author == "F. Scott"

    def test_update_isbn_to_existing_rejected(
        self, catalog: CatalogStore, sample_book, single_copy_book
    ):
        with pytest.raises(ValidationError):
            catalog.update(sample_book.id, BookUpdate(isbn=single_copy_book.isbn))

    def test_raise_quantity_adds_available(self, catalog: CatalogStore, sample_book):
        catalog.adjust_availability(sample_book.id, -1)
        book = catalog.update(sample_book.id, BookUpdate(quantity=5))
        assert book.quantity == 5
        assert book.available == 4

    def test_lower_quantity_removes_available(self, catalog: CatalogStore, sample_book):
        catalog.adjust_availability(sample_book.id, -1)
        book = catalog.update(sample_book.id, BookUpdate(quantity=2))
        assert book.quantity == 2
        assert book.available == 1

    def test_quantity_below_copies_on_loan_clamps_to_zero(
        self, catalog: CatalogStore, sample_book
    ):
        catalog.adjust_availability(sample_book.id, -1)
        catalog.adjust_availability(sample_book.id, -1)

        book = catalog.update(sample_book.id, BookUpdate(quantity=1))

        assert book.quantity == 1
        assert book.available == 0
        assert catalog.get(sample_book.id).available == 0


class TestReturnCopy:
    """Tests for putting returned copies back on the shelf."""

    def test_adds_one(self, catalog: CatalogStore, sample_book):
        catalog.adjust_availability(sample_book.id, -1)
        assert catalog.return_copy(sample_book.id).available == 3

    def test_capped_at_quantity(self, catalog: CatalogStore, sample_book):
        book = catalog.return_copy(sample_book.id)
        assert book.available == book.quantity == 3

    def test_missing_book(self, catalog: CatalogStore):
        with pytest.raises(NotFoundError):
            catalog.return_copy("no-such-book")


class TestDelete:
    """Tests for removing titles."""

    def test_delete(self, catalog: CatalogStore, sample_book):
        catalog.delete(sample_book.id)
        with pytest.raises(NotFoundError):
            catalog.get(sample_book.id)

    def test_delete_missing(self, catalog: CatalogStore):
        with pytest.raises(NotFoundError):
            catalog.delete("no-such-book")

    def test_delete_with_active_loan_rejected(self, catalog, service, member, sample_book):
        service.borrow(member.id, sample_book.id)

        with pytest.raises(ConflictError):
            catalog.delete(sample_book.id)
        assert catalog.get(sample_book.id).id == sample_book.id

    def test_delete_after_return_keeps_history(self, catalog, service, member, sample_book):
        result = service.borrow(member.id, sample_book.id)
        service.return_loan(result.loan.id)

        catalog.delete(sample_book.id)

        history = service.list_history_for_borrower(member.id)
        assert [loan.id for loan in history] == [result.loan.id]
        assert history[0].book_title is None


class TestAdjustAvailability:
    """Tests for the atomic availability counter."""

    def test_decrement_and_increment(self, catalog: CatalogStore, sample_book):
        assert catalog.adjust_availability(sample_book.id, -1).available == 2
        assert catalog.adjust_availability(sample_book.id, 1).available == 3

    def test_cannot_go_below_zero(self, catalog: CatalogStore, single_copy_book):
        catalog.adjust_availability(single_copy_book.id, -1)

        with pytest.raises(InvalidStateError):
            catalog.adjust_availability(single_copy_book.id, -1)
        assert catalog.get(single_copy_book.id).available == 0

    def test_cannot_exceed_quantity(self, catalog: CatalogStore, sample_book):
        with pytest.raises(InvalidStateError):
            catalog.adjust_availability(sample_book.id, 1)
        assert catalog.get(sample_book.id).available == 3

    def test_missing_book(self, catalog: CatalogStore):
        with pytest.raises(NotFoundError):
            catalog.adjust_availability("no-such-book", -1)
