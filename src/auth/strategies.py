"""
Authentication strategies, one per AuthType

File: src/auth/strategies.py
"""

import hmac
import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional

from config.dte_config import (
    STANDARD_PERMISSIONS, TOKEN_LIFETIMES, AuthType, ValidationRules
)
from src.auth.errors import HaciendaAuthError, NotFoundError, ServiceError
from src.auth.hacienda_client import HaciendaAuthClient
from src.auth.models import AuthClaims, AuthCredentials, HaciendaCredentials
from src.auth.ports import AuthRepositoryPort, CacheManager
from src.models.database_models import hash_api_secret
from src.repositories.errors import RecordNotFoundError

logger = logging.getLogger(__name__)

class AuthStrategy(ABC):
    """Login mechanism for one auth type"""

    @abstractmethod
    def validate_credentials(self, credentials: AuthCredentials) -> None:
        """Raise ServiceError if the credentials are malformed"""

    @abstractmethod
    def authenticate(self, credentials: AuthCredentials) -> AuthClaims: ...

    @abstractmethod
    def get_token_lifetime(self, credentials: AuthCredentials) -> timedelta: ...

    @abstractmethod
    def get_hacienda_credentials(self, token: str) -> HaciendaCredentials: ...

    @abstractmethod
    def get_auth_type(self) -> AuthType: ...

class StandardAuthStrategy(AuthStrategy):
    """
    API key and secret issued per branch office, plus the MH API user of
    the issuer. When an MH client is configured the MH user is also checked
    against the MH security endpoint.
    """

    SERVICE = "StandardAuthStrategy"

    def __init__(
        self,
        auth_repository: AuthRepositoryPort,
        cache_service: CacheManager,
        hacienda_client: Optional[HaciendaAuthClient] = None,
    ):
        self.auth_repository = auth_repository
        self.cache_service = cache_service
        self.hacienda_client = hacienda_client

    def validate_credentials(self, credentials: AuthCredentials) -> None:
        if not ValidationRules.API_KEY_PATTERN.match(credentials.api_key):
            raise ServiceError(self.SERVICE, "ValidateCredentials", "InvalidCredentialFormat", "api_key")

        if len(credentials.api_secret) < ValidationRules.MIN_API_SECRET_LENGTH:
            raise ServiceError(self.SERVICE, "ValidateCredentials", "InvalidCredentialFormat", "api_secret")

        if not ValidationRules.validate_nit(credentials.hacienda_credentials.username):
            raise ServiceError(self.SERVICE, "ValidateCredentials", "InvalidCredentialFormat", "username")

    def authenticate(self, credentials: AuthCredentials) -> AuthClaims:
        try:
            branch = self.auth_repository.get_branch_by_api_key(credentials.api_key)
        except RecordNotFoundError:
            raise NotFoundError(self.SERVICE, "Authenticate")

        expected_hash = branch.api_secret
        if not hmac.compare_digest(expected_hash, hash_api_secret(credentials.api_secret)):
            logger.warning(f"Invalid API secret for branch {branch.id}")
            raise ServiceError(self.SERVICE, "Authenticate", "InvalidCredentials")

        user = branch.user
        username = credentials.hacienda_credentials.username
        if username != user.nit:
            logger.warning(f"MH user {username} does not belong to branch {branch.id}")
            raise ServiceError(self.SERVICE, "Authenticate", "InvalidCredentials")

        hacienda_token = None
        if self.hacienda_client is not None:
            try:
                hacienda_token = self.hacienda_client.authenticate(
                    username, credentials.hacienda_credentials.password
                )
            except HaciendaAuthError as e:
                raise ServiceError(self.SERVICE, "Authenticate", "HaciendaAuthFailed") from e

        logger.info(f"Branch {branch.id} of NIT {user.nit} authenticated")
        return AuthClaims(
            client_id=user.id,
            branch_id=branch.id,
            nit=user.nit,
            auth_type=self.get_auth_type().value,
            permissions=list(STANDARD_PERMISSIONS),
            hacienda_token=hacienda_token,
        )

    def get_token_lifetime(self, credentials: AuthCredentials) -> timedelta:
        return TOKEN_LIFETIMES[AuthType.STANDARD]

    def get_hacienda_credentials(self, token: str) -> HaciendaCredentials:
        credentials = self.cache_service.get_credentials(token)
        if credentials is None:
            raise NotFoundError(self.SERVICE, "GetHaciendaCredentials")
        return credentials

    def get_auth_type(self) -> AuthType:
        return AuthType.STANDARD
