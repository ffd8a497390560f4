"""Exception hierarchy for elibrary.

Every error a caller can act on carries a machine-readable ``code`` so
the REST layer and the CLI can tell the kinds apart without parsing
messages.
"""


class LibraryError(Exception):
    """Base exception for all elibrary errors."""

    code = "error"

    def __init__(self, message: str = ""):
        self.message = message or (self.__doc__ or "").strip()
        super().__init__(self.message)


class NotFoundError(LibraryError):
    """Referenced book, loan or user does not exist."""

    code = "not_found"


class UnavailableError(LibraryError):
    """No copies of the book are available to lend."""

    code = "unavailable"


class ConflictError(LibraryError):
    """Operation conflicts with existing records."""

    code = "conflict"


class InvalidStateError(LibraryError):
    """Record is in the wrong state for the operation."""

    code = "invalid_state"


class NoFineError(LibraryError):
    """Loan has no fine to pay."""

    code = "no_fine"


class AlreadyPaidError(LibraryError):
    """Fine has already been paid."""

    code = "already_paid"


class ValidationError(LibraryError):
    """Input is malformed or violates a uniqueness rule."""

    code = "validation_error"


class AuthenticationError(LibraryError):
    """No authenticated user on the request."""

    code = "not_authenticated"


class PermissionDeniedError(LibraryError):
    """Actor is not allowed to access the resource."""

    code = "forbidden"


class InternalError(LibraryError):
    """Unexpected failure below the service layer."""

    code = "internal"


class StorageError(InternalError):
    """Database operation failed and was rolled back."""
