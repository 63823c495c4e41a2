"""
DTE Repositories Package
"""
from .errors import RepositoryError, RecordNotFoundError, DuplicateKeyError, InvalidRecordError
from .auth_repository import SQLAlchemyAuthRepository, conflict_field
from .dte_repository import DTEDetailRepository

__all__ = [
    'RepositoryError', 'RecordNotFoundError', 'DuplicateKeyError', 'InvalidRecordError',
    'SQLAlchemyAuthRepository', 'conflict_field', 'DTEDetailRepository'
]
