"""Error types raised by the catalog and rendered by the API as
``{"success": false, "message": ...}``."""


class CatalogError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(CatalogError):
    status_code = 400
    default_message = "Incomplete data"


class AuthError(CatalogError):
    status_code = 401
    default_message = "Access denied. Please log in first."


class NotFoundError(CatalogError):
    status_code = 404
    default_message = "Book not found"


class StorageError(CatalogError):
    """A persistence failure in the relational store."""

    status_code = 500
