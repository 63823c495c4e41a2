"""
Storage errors raised by the repository adapters

File: src/repositories/errors.py
"""

class RepositoryError(Exception):
    """Base class for storage errors"""

class RecordNotFoundError(RepositoryError):
    """The requested record does not exist"""

class DuplicateKeyError(RepositoryError):
    """A uniqueness constraint was violated on `field`"""

    def __init__(self, field: str, message: str = ""):
        self.field = field
        super().__init__(message or f"Duplicated value for {field}")

class InvalidRecordError(RepositoryError):
    """The record was rejected by the storage engine"""
