"""
Service errors raised by the auth orchestrator

File: src/auth/errors.py
"""

from typing import Optional

from config.dte_config import SERVICE_ERROR_MESSAGES

class ServiceError(Exception):
    """Error raised at a service boundary, identified by a catalog code"""

    def __init__(self, service: str, operation: str, code: str, *params):
        self.service = service
        self.operation = operation
        self.code = code
        self.params = params
        template = SERVICE_ERROR_MESSAGES.get(code, code)
        self.message = template.format(*params) if params else template
        super().__init__(f"[{service}.{operation}] {code}: {self.message}")

class NotFoundError(ServiceError):
    def __init__(self, service: str, operation: str):
        super().__init__(service, operation, "NotFound")

class DuplicatedEntryError(ServiceError):
    def __init__(self, service: str, operation: str, field: str):
        self.field = field
        super().__init__(service, operation, "DuplicatedEntry", field)

class ServerError(ServiceError):
    """Configuration problem, not actionable by the client"""

    def __init__(self, service: str, operation: str, auth_type: str):
        self.auth_type = auth_type
        super().__init__(service, operation, "ServerError", auth_type)

class HaciendaAuthError(Exception):
    """The MH identity endpoint refused or failed the login"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
