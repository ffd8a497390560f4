"""Command-line interface for elibrary.

Built with Typer for commands and Rich for output. These are operator
commands: they act directly on the database with no access checks.
"""

from typing import Optional

import typer
from pydantic import ValidationError as SchemaError
from rich.console import Console
from rich.table import Table

from .catalog.schemas import BookCreate
from .catalog.store import CatalogStore
from .config import get_config
from .db.sqlite import Database, get_db
from .exceptions import LibraryError
from .lending.schemas import LoanResponse
from .lending.service import LendingService
from .logging import setup_logging
from .users.manager import UserManager
from .users.schemas import Role, UserCreate

# Create the main app
app = typer.Typer(
    name="elibrary",
    help="Run and administer the elibrary lending backend.",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def _db() -> Database:
    return get_db(str(get_config().db_path))


def _first_error(e: SchemaError) -> str:
    err = e.errors()[0]
    field = ".".join(str(p) for p in err["loc"])
    return f"{field}: {err['msg']}" if field else err["msg"]


def format_book_table(books: list, title: str = "Books") -> Table:
    """Create a rich table for displaying catalog titles."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="cyan", no_wrap=False, max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("ISBN")
    table.add_column("Available", justify="center")

    for book in books:
        table.add_row(
            book.id,
            book.title,
            book.author,
            book.isbn,
            f"{book.available}/{book.quantity}",
        )

    return table


def format_loan_table(loans: list[LoanResponse], title: str = "Loans") -> Table:
    """Create a rich table for displaying loans."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Book", style="cyan", max_width=40)
    table.add_column("Due", style="yellow")
    table.add_column("Status")
    table.add_column("Fine", justify="right")

    for loan in loans:
        fine = "-"
        if loan.fine:
            fine = f"{loan.fine} ({'paid' if loan.fine_paid else 'unpaid'})"
        table.add_row(
            loan.id,
            loan.book_title or loan.book_id,
            loan.due_date.strftime("%Y-%m-%d"),
            loan.status.value,
            fine,
        )

    return table


# ============================================================================
# Setup
# ============================================================================


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    config = get_config()
    setup_logging("DEBUG" if verbose else config.log_level, config.log_format)


@app.command("init-db")
def init_db() -> None:
    """Create the database and its tables."""
    config = get_config()
    errors = config.validate()
    if errors:
        for error in errors:
            print_error(error)
        raise typer.Exit(1)

    _db().create_tables()
    print_success(f"Database ready at {config.db_path}")


@app.command("create-admin")
def create_admin(
    name: str = typer.Option(..., "--name", "-n", help="Admin's name"),
    email: str = typer.Option(..., "--email", "-e", help="Admin's email"),
) -> None:
    """Create the first admin account."""
    try:
        user = UserManager(_db()).create_admin(name, email)
    except SchemaError as e:
        print_error(_first_error(e))
        raise typer.Exit(1)
    except LibraryError as e:
        print_error(e.message)
        raise typer.Exit(1)

    print_success(f"Created admin {user.email}")
    print_info(f"ID: {user.id}")


# ============================================================================
# Catalog and Members
# ============================================================================


@app.command("add-user")
def add_user(
    name: str = typer.Argument(..., help="Member's name"),
    email: str = typer.Argument(..., help="Member's email"),
) -> None:
    """Register a library member."""
    try:
        user = UserManager(_db()).create_user(UserCreate(name=name, email=email, role=Role.USER))
    except SchemaError as e:
        print_error(_first_error(e))
        raise typer.Exit(1)
    except LibraryError as e:
        print_error(e.message)
        raise typer.Exit(1)

    print_success(f"Registered {user.name} <{user.email}>")
    print_info(f"ID: {user.id}")


@app.command("add-book")
def add_book(
    title: str = typer.Option(..., "--title", "-t", help="Book title"),
    author: str = typer.Option(..., "--author", "-a", help="Author name"),
    isbn: str = typer.Option(..., "--isbn", "-i", help="ISBN"),
    quantity: int = typer.Option(1, "--quantity", "-q", help="Copies owned"),
    description: str = typer.Option("", "--description", "-d", help="Short description"),
) -> None:
    """Add a title to the catalog."""
    try:
        data = BookCreate(
            title=title,
            author=author,
            isbn=isbn,
            quantity=quantity,
            description=description,
        )
        book = CatalogStore(_db()).create(data)
    except SchemaError as e:
        print_error(_first_error(e))
        raise typer.Exit(1)
    except LibraryError as e:
        print_error(e.message)
        raise typer.Exit(1)

    print_success(f"Added '{book.title}' ({book.quantity} copies)")
    print_info(f"ID: {book.id}")


@app.command()
def books(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by title, author or ISBN"),
) -> None:
    """List catalog titles."""
    results = CatalogStore(_db()).list_books(search=search)
    if not results:
        print_info("No books found.")
        return
    console.print(format_book_table(results))


@app.command()
def loans(
    user_id: str = typer.Argument(..., help="Borrower's user ID"),
    all_loans: bool = typer.Option(False, "--all", "-a", help="Include returned loans"),
) -> None:
    """Show a member's loans (active only unless --all)."""
    db = _db()
    try:
        user = UserManager(db).get_user(user_id)
    except LibraryError as e:
        print_error(e.message)
        raise typer.Exit(1)

    service = LendingService(db)
    if all_loans:
        results = service.list_history_for_borrower(user.id)
        title = f"Loan history for {user.name}"
    else:
        results = service.list_active_for_borrower(user.id)
        title = f"Books out to {user.name}"

    if not results:
        print_info("No loans found.")
        return
    console.print(format_loan_table(results, title=title))


# ============================================================================
# Reminders and Server
# ============================================================================


@app.command()
def sweep() -> None:
    """Run one due-date reminder sweep now."""
    from .notify.notifier import DueDateNotifier
    from .notify.sender import build_sender

    config = get_config()
    notifier = DueDateNotifier(build_sender(config), db=_db())
    report = notifier.sweep()

    console.print(
        f"Checked [bold]{report.checked}[/bold] active loans, "
        f"sent [green]{report.sent}[/green], failed [red]{report.failed}[/red]"
    )
    if report.failed:
        raise typer.Exit(1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port"),
    debug: bool = typer.Option(False, "--debug", help="Flask debug mode"),
) -> None:
    """Run the REST API with the daily reminder scheduler."""
    from .api import run_server

    config = get_config()
    console.print(
        f"Serving on http://{host or config.host}:{port or config.port} "
        f"(reminders {'on' if config.notifier_enabled else 'off'})"
    )
    run_server(host=host, port=port, debug=debug)


# ============================================================================
# Version Command
# ============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"elibrary version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
