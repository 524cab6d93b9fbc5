"""Domain error types surfaced to the HTTP layer."""


class MobyUsersError(Exception):
    """Base class for errors raised by the user operations."""


class ValidationError(MobyUsersError):
    """Raised when caller input is missing or malformed."""


class NotFoundError(MobyUsersError):
    """Raised when a referenced entity does not exist."""

    status_code = 404


class StoreError(MobyUsersError):
    """Raised when a call to the record store fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConflictError(ValidationError):
    """Raised when an operation would duplicate an existing entity."""
