class DirectoryError(Exception):
    """Base directory error."""


class DirectoryValidationError(DirectoryError):
    """Raised when an island, status, badge, plan or lifecycle value is not recognized."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class StorageError(DirectoryError):
    """Raised when the provider store is unreachable or a read fails."""


class NotFoundError(DirectoryError):
    """Raised when the requested provider does not exist or is archived."""
