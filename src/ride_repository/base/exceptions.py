from typing import List, Optional


class RepositoryException(Exception):
    """Base class for all errors raised by the ride repository."""

    def __init__(self, message: str = "Repository operation failed."):
        super().__init__(message)
        self.message = message


class ValidationException(RepositoryException):
    """Exception raised when client input is malformed or incomplete."""

    def __init__(self, message: str = "Validation failed."):
        super().__init__(message)


class MissingFieldsException(ValidationException):
    """Exception raised when required fields are absent or blank on insert."""

    def __init__(self, missing: List[str], message: str = "Missing required fields"):
        super().__init__(message)
        self.missing = list(missing)


class NoUpdatableFieldsException(ValidationException):
    """Exception raised when an update request carries no recognized field."""

    def __init__(self, message: str = "No updatable fields provided."):
        super().__init__(message)


class ObjectNotFoundException(RepositoryException):
    """Exception raised when an object with the specified identifier does not exist."""

    def __init__(self, message: str = "The requested object was not found."):
        super().__init__(message)


class StoreUnavailableException(RepositoryException):
    """Exception raised when the database cannot be reached or refuses access."""

    def __init__(
        self,
        message: str = "Database unavailable",
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.detail = detail or (
            "Backend is running, but database is not connected/configured."
        )


class SchemaMismatchException(RepositoryException):
    """Exception raised in strict mode when a table lacks a recognized id column."""

    def __init__(self, message: str = "Table schema is not recognized."):
        super().__init__(message)
