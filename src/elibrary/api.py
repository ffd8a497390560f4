"""REST API for elibrary built on Flask.

Authentication happens upstream: the gateway in front of this app puts the
caller's user ID in the ``X-User-Id`` header. Every handler resolves that
header to an ``Actor`` once and checks the access policy before touching
the services.
"""

from typing import Any, Optional

from flask import Flask, jsonify, request
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from .catalog.schemas import BookCreate, BookResponse, BookUpdate
from .catalog.store import CatalogStore
from .config import Config, get_config
from .db.sqlite import Database, get_db
from .exceptions import (
    AlreadyPaidError,
    AuthenticationError,
    ConflictError,
    InternalError,
    InvalidStateError,
    LibraryError,
    NoFineError,
    NotFoundError,
    PermissionDeniedError,
    UnavailableError,
    ValidationError,
)
from .lending.service import LendingService
from .logging import get_logger
from .notify.notifier import DueDateNotifier
from .notify.scheduler import NotifierScheduler
from .notify.sender import ReminderSender, build_sender
from .users.manager import UserManager
from .users.policy import Action, Actor, Resource, require_access
from .users.schemas import Role, UserCreate, UserResponse
from .utils import Clock, to_iso, utc_now

logger = get_logger(__name__)

USER_HEADER = "X-User-Id"

STATUS_CODES: dict[type, int] = {
    NotFoundError: 404,
    UnavailableError: 409,
    ConflictError: 409,
    InvalidStateError: 409,
    NoFineError: 400,
    AlreadyPaidError: 400,
    ValidationError: 400,
    AuthenticationError: 401,
    PermissionDeniedError: 403,
    InternalError: 500,
}


def status_for(error: LibraryError) -> int:
    """HTTP status for an error kind."""
    for cls in type(error).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json")


def _json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _require_field(data: dict[str, Any], *names: str) -> str:
    """First present value among ``names`` (camelCase and snake_case accepted)."""
    for name in names:
        value = data.get(name)
        if value:
            return str(value)
    raise ValidationError(f"{names[0]} is required")


def create_app(
    db: Optional[Database] = None,
    config: Optional[Config] = None,
    sender: Optional[ReminderSender] = None,
    clock: Clock = utc_now,
    start_scheduler: bool = False,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        db: Database instance (defaults to the configured one)
        config: Application config
        sender: Reminder sender for the background sweep
        clock: Returns the current time
        start_scheduler: Start the daily reminder sweep in the background
    """
    config = config or get_config()
    db = db or get_db(str(config.db_path))
    db.create_tables()

    catalog = CatalogStore(db)
    users = UserManager(db)
    lending = LendingService(
        db, clock=clock, lending_days=config.lending_days, fine_per_day=config.fine_per_day
    )

    app = Flask(__name__)
    app.extensions["elibrary"] = {
        "db": db,
        "catalog": catalog,
        "users": users,
        "lending": lending,
    }

    if start_scheduler:
        notifier = DueDateNotifier(sender or build_sender(config), db=db, clock=clock)
        scheduler = NotifierScheduler(notifier, clock=clock)
        scheduler.start()
        app.extensions["elibrary"]["scheduler"] = scheduler

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    @app.errorhandler(LibraryError)
    def handle_library_error(error: LibraryError):
        status = status_for(error)
        if status >= 500:
            logger.error("Request failed: %s", error.message)
        return jsonify({"error": error.message, "code": error.code}), status

    @app.errorhandler(SchemaError)
    def handle_schema_error(error: SchemaError):
        details = [
            {"field": ".".join(str(p) for p in e["loc"]), "message": e["msg"]}
            for e in error.errors()
        ]
        return jsonify({"error": "Invalid request", "code": ValidationError.code, "details": details}), 400

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def current_actor() -> Optional[Actor]:
        """Resolve the ``X-User-Id`` header to an Actor, or None."""
        user_id = request.headers.get(USER_HEADER, "").strip()
        if not user_id:
            return None
        try:
            user = users.get_user(user_id)
        except NotFoundError as e:
            raise AuthenticationError("Unknown user") from e
        return Actor(user_id=user.id, role=Role(user.role))

    def require_actor() -> Actor:
        """Resolve the caller, refusing anonymous requests."""
        actor = current_actor()
        if actor is None:
            raise AuthenticationError("Authentication required")
        return actor

    def authorize(action: Action, owner_id: Optional[str] = None) -> Optional[Actor]:
        actor = current_actor()
        require_access(actor, Resource(action=action, owner_id=owner_id))
        return actor

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    @app.route("/health")
    def health():
        """Liveness check with a catalog count."""
        return jsonify({
            "status": "healthy",
            "timestamp": to_iso(clock()),
            "total_books": catalog.count(),
        })

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    @app.route("/api/books", methods=["GET"])
    def list_books():
        authorize(Action.READ_CATALOG)
        books = catalog.list_books(search=request.args.get("search") or None)
        return jsonify([_dump(BookResponse.model_validate(b)) for b in books])

    @app.route("/api/books/<book_id>", methods=["GET"])
    def get_book(book_id: str):
        authorize(Action.READ_CATALOG)
        return jsonify(_dump(BookResponse.model_validate(catalog.get(book_id))))

    @app.route("/api/books", methods=["POST"])
    def add_book():
        authorize(Action.MANAGE_CATALOG)
        book = catalog.create(BookCreate.model_validate(_json_body()))
        return jsonify({
            "message": "Book added successfully",
            "book": _dump(BookResponse.model_validate(book)),
        }), 201

    @app.route("/api/books/<book_id>", methods=["PUT"])
    def update_book(book_id: str):
        authorize(Action.MANAGE_CATALOG)
        book = catalog.update(book_id, BookUpdate.model_validate(_json_body()))
        return jsonify({
            "message": "Book updated successfully",
            "book": _dump(BookResponse.model_validate(book)),
        })

    @app.route("/api/books/<book_id>", methods=["DELETE"])
    def delete_book(book_id: str):
        authorize(Action.MANAGE_CATALOG)
        catalog.delete(book_id)
        return jsonify({"message": "Book deleted successfully"})

    # ------------------------------------------------------------------
    # Lending
    # ------------------------------------------------------------------

    @app.route("/api/books/purchase", methods=["POST"])
    def borrow_book():
        actor = authorize(Action.BORROW)
        book_id = _require_field(_json_body(), "bookId", "book_id")
        result = lending.borrow(actor.user_id, book_id)
        return jsonify({
            "message": "Book purchased successfully",
            "transaction": _dump(result.loan),
            "dueDate": to_iso(result.due_date),
        })

    @app.route("/api/books/return", methods=["POST"])
    def return_book():
        actor = require_actor()
        loan_id = _require_field(_json_body(), "transactionId", "loan_id")
        loan = lending.ledger.get(loan_id)
        require_access(actor, Resource(action=Action.MANAGE_LOAN, owner_id=loan.borrower_id))
        result = lending.return_loan(loan_id)
        return jsonify({
            "message": "Book returned successfully",
            "transaction": _dump(result.loan),
            "fine": result.fine,
        })

    @app.route("/api/books/pay-fine", methods=["POST"])
    def pay_fine():
        actor = require_actor()
        loan_id = _require_field(_json_body(), "transactionId", "loan_id")
        loan = lending.ledger.get(loan_id)
        require_access(actor, Resource(action=Action.MANAGE_LOAN, owner_id=loan.borrower_id))
        updated = lending.pay_fine(loan_id)
        return jsonify({"message": "Fine paid successfully", "transaction": _dump(updated)})

    @app.route("/api/books/user/books", methods=["GET"])
    def my_books():
        actor = authorize(Action.BORROW)
        loans = lending.list_active_for_borrower(actor.user_id)
        return jsonify([_dump(loan) for loan in loans])

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @app.route("/api/users", methods=["POST"])
    def register_user():
        data = UserCreate.model_validate({**_json_body(), "role": Role.USER.value})
        user = users.create_user(data)
        return jsonify(_dump(UserResponse.model_validate(user))), 201

    @app.route("/api/users", methods=["GET"])
    def list_users():
        authorize(Action.LIST_USERS)
        return jsonify([_dump(UserResponse.model_validate(u)) for u in users.list_users()])

    def _owner_for(user_id: Optional[str]) -> str:
        return user_id or require_actor().user_id

    @app.route("/api/users/transactions", methods=["GET"])
    @app.route("/api/users/<user_id>/transactions", methods=["GET"])
    def user_transactions(user_id: Optional[str] = None):
        owner_id = _owner_for(user_id)
        authorize(Action.VIEW_LOANS, owner_id=owner_id)
        users.get_user(owner_id)
        return jsonify([_dump(loan) for loan in lending.list_history_for_borrower(owner_id)])

    @app.route("/api/users/pending-returns", methods=["GET"])
    @app.route("/api/users/<user_id>/pending-returns", methods=["GET"])
    def pending_returns(user_id: Optional[str] = None):
        owner_id = _owner_for(user_id)
        authorize(Action.VIEW_LOANS, owner_id=owner_id)
        users.get_user(owner_id)
        return jsonify([_dump(loan) for loan in lending.list_active_for_borrower(owner_id)])

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False) -> None:
    """Run the API server with the reminder scheduler."""
    config = get_config()
    app = create_app(config=config, start_scheduler=config.notifier_enabled)
    app.run(host=host or config.host, port=port or config.port, debug=debug, use_reloader=False)
