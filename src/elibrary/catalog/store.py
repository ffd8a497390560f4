"""Catalog store for book records and copy counters."""

from typing import Optional

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.sqlite import Database, get_db
from ..exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..logging import get_logger
from .models import Book
from .schemas import BookCreate, BookUpdate

logger = get_logger(__name__)


class CatalogStore:
    """Owns book records and their availability counters."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize catalog store.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, book_id: str, session: Optional[Session] = None) -> Book:
        """Get a book by ID.

        Args:
            book_id: Book ID
            session: Session to run in (joins the caller's transaction)

        Returns:
            The book

        Raises:
            NotFoundError: No book with that ID
        """

        def _get(s: Session) -> Book:
            book = s.get(Book, book_id)
            if book is None:
                raise NotFoundError(f"Book not found: {book_id}")
            return book

        if session:
            return _get(session)
        with self.db.get_session() as s:
            book = _get(s)
            s.expunge(book)
            return book

    def find_by_isbn(self, isbn: str, session: Optional[Session] = None) -> Optional[Book]:
        """Get a book by ISBN, or None."""

        def _find(s: Session) -> Optional[Book]:
            return s.execute(select(Book).where(Book.isbn == isbn)).scalar_one_or_none()

        if session:
            return _find(session)
        with self.db.get_session() as s:
            book = _find(s)
            if book:
                s.expunge(book)
            return book

    def list_books(self, search: Optional[str] = None) -> list[Book]:
        """List catalog titles, newest first.

        Args:
            search: Optional case-insensitive match on title, author or ISBN

        Returns:
            List of books
        """
        with self.db.get_session() as session:
            stmt = select(Book)
            if search:
                pattern = f"%{search.lower()}%"
                stmt = stmt.where(
                    or_(
                        func.lower(Book.title).like(pattern),
                        func.lower(Book.author).like(pattern),
                        Book.isbn.like(pattern),
                    )
                )
            stmt = stmt.order_by(Book.created_at.desc(), Book.title)

            books = session.execute(stmt).scalars().all()
            for book in books:
                session.expunge(book)
            return list(books)

    def count(self) -> int:
        """Number of catalog titles."""
        with self.db.get_session() as session:
            return session.execute(select(func.count()).select_from(Book)).scalar() or 0

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create(self, data: BookCreate) -> Book:
        """Add a book to the catalog with every copy available.

        Args:
            data: Book creation data

        Returns:
            Created book

        Raises:
            ValidationError: ISBN already in the catalog
        """
        with self.db.transaction() as session:
            if self.find_by_isbn(data.isbn, session=session):
                raise ValidationError(f"A book with ISBN {data.isbn} already exists")

            book = Book(
                title=data.title,
                author=data.author,
                description=data.description,
                isbn=data.isbn,
                quantity=data.quantity,
            )
            if data.cover_image:
                book.cover_image = data.cover_image

            session.add(book)
            try:
                session.flush()
            except IntegrityError as e:
                raise ValidationError(f"A book with ISBN {data.isbn} already exists") from e

            session.expunge(book)

        logger.info("Added book %s (isbn=%s, quantity=%d)", book.id, book.isbn, book.quantity)
        return book

    def update(self, book_id: str, data: BookUpdate) -> Book:
        """Update a book.

        A quantity change moves ``available`` by the same delta, kept
        within ``[0, quantity]``. Shrinking below the copies on loan is
        allowed: ``available`` drops to 0 and ``return_copy`` stops
        adding copies once the shelf is back at ``quantity``.

        Args:
            book_id: Book ID
            data: Update data

        Returns:
            Updated book

        Raises:
            NotFoundError: No book with that ID
            ValidationError: New ISBN belongs to another book
        """
        with self.db.transaction() as session:
            book = self.get(book_id, session=session)
            update_data = data.model_dump(exclude_unset=True, exclude_none=True)

            new_isbn = update_data.get("isbn")
            if new_isbn and new_isbn != book.isbn:
                if self.find_by_isbn(new_isbn, session=session):
                    raise ValidationError(f"A book with ISBN {new_isbn} already exists")

            if "quantity" in update_data:
                new_quantity = update_data.pop("quantity")
                if new_quantity < book.on_loan:
                    logger.warning(
                        "Book %s quantity set to %d with %d copies on loan",
                        book_id, new_quantity, book.on_loan,
                    )
                delta = new_quantity - book.quantity
                book.available = min(max(book.available + delta, 0), new_quantity)
                book.quantity = new_quantity

            for field, value in update_data.items():
                setattr(book, field, value)

            try:
                session.flush()
            except IntegrityError as e:
                raise ValidationError("Book update violates catalog constraints") from e

            session.expunge(book)
            return book

    def delete(self, book_id: str) -> None:
        """Remove a book from the catalog.

        Args:
            book_id: Book ID

        Raises:
            NotFoundError: No book with that ID
            ConflictError: The book has copies on loan
        """
        from ..lending.models import Loan
        from ..lending.schemas import LoanStatus

        with self.db.transaction() as session:
            book = self.get(book_id, session=session)

            active = session.execute(
                select(func.count()).where(
                    Loan.book_id == book_id,
                    Loan.status == LoanStatus.ISSUED.value,
                )
            ).scalar() or 0
            if active:
                raise ConflictError(
                    f"Cannot delete book: {active} active checkout(s) for this book"
                )

            session.delete(book)

        logger.info("Deleted book %s", book_id)

    def adjust_availability(
        self, book_id: str, delta: int, session: Optional[Session] = None
    ) -> Book:
        """Atomically move the available counter by ``delta``.

        Args:
            book_id: Book ID
            delta: Copies to add (negative to take)
            session: Session to run in (joins the caller's transaction)

        Returns:
            The book with its new counter

        Raises:
            NotFoundError: No book with that ID
            InvalidStateError: The counter would leave [0, quantity]
        """

        def _adjust(s: Session) -> Book:
            result = s.execute(
                update(Book)
                .where(
                    Book.id == book_id,
                    Book.available + delta >= 0,
                    Book.available + delta <= Book.quantity,
                )
                .values(available=Book.available + delta)
                .execution_options(synchronize_session=False)
            )
            book = self.get(book_id, session=s)
            if result.rowcount == 0:
                raise InvalidStateError(
                    f"Cannot change availability of {book_id} by {delta}: "
                    f"{book.available}/{book.quantity} available"
                )
            s.refresh(book)
            return book

        if session:
            return _adjust(session)
        with self.db.transaction() as s:
            book = _adjust(s)
            s.expunge(book)
            return book

    def return_copy(self, book_id: str, session: Optional[Session] = None) -> Book:
        """Put a returned copy back on the shelf.

        Adds one to ``available`` unless it already equals ``quantity``,
        which happens when the quantity was cut while copies were out.

        Raises:
            NotFoundError: No book with that ID
        """

        def _return(s: Session) -> Book:
            s.execute(
                update(Book)
                .where(Book.id == book_id)
                .values(
                    available=case(
                        (Book.available < Book.quantity, Book.available + 1),
                        else_=Book.available,
                    )
                )
                .execution_options(synchronize_session=False)
            )
            book = self.get(book_id, session=s)
            s.refresh(book)
            return book

        if session:
            return _return(session)
        with self.db.transaction() as s:
            book = _return(s)
            s.expunge(book)
            return book
