"""
DTE Auth Package
"""
from .models import AuthCredentials, AuthClaims, HaciendaCredentials
from .errors import ServiceError, NotFoundError, DuplicatedEntryError, ServerError, HaciendaAuthError
from .ports import AuthRepositoryPort, TokenManager, CacheManager
from .hacienda_client import HaciendaAuthClient
from .strategies import AuthStrategy, StandardAuthStrategy
from .auth_service import AuthService, handle_storage_error

__all__ = [
    'AuthCredentials', 'AuthClaims', 'HaciendaCredentials',
    'ServiceError', 'NotFoundError', 'DuplicatedEntryError', 'ServerError', 'HaciendaAuthError',
    'AuthRepositoryPort', 'TokenManager', 'CacheManager',
    'HaciendaAuthClient', 'AuthStrategy', 'StandardAuthStrategy',
    'AuthService', 'handle_storage_error'
]
