"""
Ports consumed by the auth orchestrator

File: src/auth/ports.py
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional

from src.auth.models import AuthClaims, HaciendaCredentials
from src.models.database_models import BranchOffice, IssuerDTE, User

class AuthRepositoryPort(ABC):
    """Issuer storage. Lookups raise RecordNotFoundError when nothing matches."""

    @abstractmethod
    def get_auth_type_by_api_key(self, api_key: str) -> str: ...

    @abstractmethod
    def get_auth_type_by_nit(self, nit: str) -> str: ...

    @abstractmethod
    def get_issuer_info_by_branch_id(self, branch_id: int) -> IssuerDTE: ...

    @abstractmethod
    def create(self, user: User) -> None: ...

    @abstractmethod
    def get_by_nit(self, nit: str) -> User: ...

    @abstractmethod
    def get_branch_by_branch_id(self, branch_id: int) -> BranchOffice: ...

    @abstractmethod
    def get_branch_by_api_key(self, api_key: str) -> BranchOffice: ...

class TokenManager(ABC):
    """Issues and checks session tokens"""

    @abstractmethod
    def generate_token(self, claims: AuthClaims, lifetime: timedelta) -> str: ...

    @abstractmethod
    def validate_token(self, token: str) -> AuthClaims: ...

    @abstractmethod
    def revoke_token(self, token: str) -> None: ...

class CacheManager(ABC):
    """Keeps the MH credentials of each session"""

    @abstractmethod
    def set_credentials(self, token: str, credentials: HaciendaCredentials, ttl: timedelta) -> None: ...

    @abstractmethod
    def get_credentials(self, token: str) -> Optional[HaciendaCredentials]: ...
