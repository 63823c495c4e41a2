"""
Authentication models

File: src/auth/models.py
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

@dataclass
class HaciendaCredentials:
    """MH (Ministerio de Hacienda) API user, the issuer NIT, and its password"""
    username: str
    password: str

    def __repr__(self) -> str:
        return f"HaciendaCredentials(username={self.username!r}, password='***')"

@dataclass
class AuthCredentials:
    api_key: str
    api_secret: str
    hacienda_credentials: Optional[HaciendaCredentials] = None

    def __repr__(self) -> str:
        return (
            f"AuthCredentials(api_key={self.api_key!r}, api_secret='***', "
            f"hacienda_credentials={self.hacienda_credentials!r})"
        )

    def is_complete(self) -> bool:
        """Every required field is present"""
        return bool(
            self.api_key
            and self.api_secret
            and self.hacienda_credentials is not None
            and self.hacienda_credentials.username
            and self.hacienda_credentials.password
        )

@dataclass
class AuthClaims:
    """Identity carried by a session token"""
    client_id: int
    branch_id: int
    nit: str
    auth_type: str
    permissions: List[str] = field(default_factory=list)
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: Optional[datetime] = None
    hacienda_token: Optional[str] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expires_at
