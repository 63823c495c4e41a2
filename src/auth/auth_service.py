"""
Auth Service
Login orchestration and issuer lookups for API clients

File: src/auth/auth_service.py
"""

import logging
from types import MappingProxyType
from typing import Mapping, NoReturn, Optional

from config.dte_config import AuthType
from src.auth.errors import (
    DuplicatedEntryError, NotFoundError, ServerError, ServiceError
)
from src.auth.hacienda_client import HaciendaAuthClient
from src.auth.models import AuthClaims, AuthCredentials, HaciendaCredentials
from src.auth.ports import AuthRepositoryPort, CacheManager, TokenManager
from src.auth.strategies import AuthStrategy, StandardAuthStrategy
from src.models.database_models import BranchOffice, IssuerDTE, User
from src.repositories.errors import (
    DuplicateKeyError, InvalidRecordError, RecordNotFoundError
)

logger = logging.getLogger(__name__)

SERVICE = "AuthService"

class AuthService:
    """
    Resolves the strategy of each client's auth type and drives the login.
    The strategy map is fixed at construction.
    """

    def __init__(
        self,
        token_service: TokenManager,
        auth_repository: AuthRepositoryPort,
        cache_service: CacheManager,
        hacienda_client: Optional[HaciendaAuthClient] = None,
        strategies: Optional[Mapping[AuthType, AuthStrategy]] = None,
    ):
        if strategies is None:
            strategies = {
                AuthType.STANDARD: StandardAuthStrategy(auth_repository, cache_service, hacienda_client),
            }
        self._strategies: Mapping[AuthType, AuthStrategy] = MappingProxyType(dict(strategies))
        self.token_service = token_service
        self.auth_repository = auth_repository
        self.cache_service = cache_service

    def _get_strategy(self, auth_type: str) -> Optional[AuthStrategy]:
        resolved = AuthType.from_value(auth_type)
        if resolved is None:
            return None
        return self._strategies.get(resolved)

    def login(self, credentials: AuthCredentials) -> str:
        """Authenticate a client and return its session token"""
        if credentials is None or not credentials.is_complete():
            raise ServiceError(SERVICE, "Login", "MissingCredentials")

        try:
            auth_type = self.auth_repository.get_auth_type_by_api_key(credentials.api_key)
        except RecordNotFoundError:
            raise NotFoundError(SERVICE, "Login")

        strategy = self._get_strategy(auth_type)
        if strategy is None:
            logger.error(f"Auth strategy not found for auth type {auth_type}")
            raise ServerError(SERVICE, "Login", auth_type)

        strategy.validate_credentials(credentials)
        claims = strategy.authenticate(credentials)
        token_lifetime = strategy.get_token_lifetime(credentials)

        token = self.token_service.generate_token(claims, token_lifetime)
        self.cache_service.set_credentials(token, credentials.hacienda_credentials, token_lifetime)

        logger.info(f"Login succeeded for NIT {claims.nit}, token valid for {token_lifetime}")
        return token

    def get_hacienda_credentials(self, nit: str, token: str) -> HaciendaCredentials:
        """MH credentials stored for a session at login"""
        try:
            auth_type = self.auth_repository.get_auth_type_by_nit(nit)
        except RecordNotFoundError:
            logger.info(f"Error getting auth type for NIT {nit}")
            raise NotFoundError(SERVICE, "GetHaciendaCredentials")
        logger.info(f"Auth type retrieved: {auth_type}")

        strategy = self._get_strategy(auth_type)
        if strategy is None:
            logger.info(f"Unsupported authentication type: {auth_type}")
            raise ServiceError(SERVICE, "GetHaciendaCredentials", "UnsupportedAuthType", auth_type)
        logger.info(f"Strategy found: {strategy.get_auth_type().value}")

        return strategy.get_hacienda_credentials(token)

    def get_issuer(self, branch_id: int) -> IssuerDTE:
        return self.auth_repository.get_issuer_info_by_branch_id(branch_id)

    def validate_token(self, token: str) -> AuthClaims:
        return self.token_service.validate_token(token)

    def revoke_token(self, token: str) -> None:
        self.token_service.revoke_token(token)

    def create(self, user: User) -> None:
        """Register an issuer with its branch offices"""
        try:
            self.auth_repository.create(user)
        except Exception as e:
            handle_storage_error("Create", e)

    def get_by_nit(self, nit: str) -> User:
        try:
            return self.auth_repository.get_by_nit(nit)
        except Exception as e:
            handle_storage_error("GetByNIT", e)

    def get_branch_by_branch_id(self, branch_id: int) -> BranchOffice:
        try:
            return self.auth_repository.get_branch_by_branch_id(branch_id)
        except Exception as e:
            handle_storage_error("GetBranchByBranchID", e)

def handle_storage_error(operation: str, error: Exception) -> NoReturn:
    """Translate storage errors into service errors, re-raise anything else"""
    if isinstance(error, RecordNotFoundError):
        raise NotFoundError(SERVICE, operation) from error

    if isinstance(error, DuplicateKeyError):
        raise DuplicatedEntryError(SERVICE, operation, error.field) from error

    if isinstance(error, InvalidRecordError):
        raise ServiceError(SERVICE, operation, "InvalidData") from error

    raise error
