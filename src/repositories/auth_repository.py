"""
SQLAlchemy adapter for the auth repository port

File: src/repositories/auth_repository.py
"""

import logging
import re
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import select
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload, sessionmaker

from src.auth.ports import AuthRepositoryPort
from src.models.database_models import BranchOffice, IssuerDTE, User
from src.repositories.errors import (
    DuplicateKeyError, InvalidRecordError, RecordNotFoundError
)

logger = logging.getLogger(__name__)

# Named unique constraints and the field each protects
CONSTRAINT_FIELDS = {
    'uq_users_nit': 'nit',
    'uq_users_nrc': 'nrc',
    'uq_users_email': 'email',
    'uq_users_phone': 'phone',
    'uq_branch_offices_api_key': 'api_key',
    'uq_dte_details_control_number': 'control_number',
}

# SQLite reports the column instead: "UNIQUE constraint failed: users.nit"
SQLITE_UNIQUE_PATTERN = re.compile(r'UNIQUE constraint failed: (\w+)\.(\w+)')

def conflict_field(error: IntegrityError) -> Optional[str]:
    """Field of the unique constraint violated by `error`, None if it is another integrity error"""
    original = error.orig

    # psycopg exposes the violated constraint directly
    diag = getattr(original, 'diag', None)
    constraint_name = getattr(diag, 'constraint_name', None)
    if constraint_name in CONSTRAINT_FIELDS:
        return CONSTRAINT_FIELDS[constraint_name]

    message = str(original)
    match = SQLITE_UNIQUE_PATTERN.search(message)
    if match:
        return match.group(2)

    # MySQL: "Duplicate entry 'x' for key 'users.uq_users_nit'"
    for name, field in CONSTRAINT_FIELDS.items():
        if name in message:
            return field
    return None

class SessionScopeMixin:
    """One session per repository call"""

    session_factory: sessionmaker

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _insert(self, session: Session, record) -> None:
        """Insert a record translating constraint violations"""
        session.add(record)
        try:
            session.flush()
        except IntegrityError as e:
            field = conflict_field(e)
            if field is None:
                raise
            logger.info(f"Duplicated entry on {field}")
            raise DuplicateKeyError(field, str(e.orig)) from e
        except DataError as e:
            raise InvalidRecordError(str(e.orig)) from e

class SQLAlchemyAuthRepository(SessionScopeMixin, AuthRepositoryPort):
    """Users and branch offices stored through SQLAlchemy"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_auth_type_by_api_key(self, api_key: str) -> str:
        with self._session() as session:
            auth_type = session.execute(
                select(User.auth_type)
                .join(BranchOffice, BranchOffice.user_id == User.id)
                .where(BranchOffice.api_key == api_key, BranchOffice.is_active.is_(True))
            ).scalar_one_or_none()

        if auth_type is None:
            raise RecordNotFoundError(f"No active branch with api key {api_key}")
        return auth_type

    def get_auth_type_by_nit(self, nit: str) -> str:
        with self._session() as session:
            auth_type = session.execute(
                select(User.auth_type).where(User.nit == nit)
            ).scalar_one_or_none()

        if auth_type is None:
            raise RecordNotFoundError(f"No user with NIT {nit}")
        return auth_type

    def get_issuer_info_by_branch_id(self, branch_id: int) -> IssuerDTE:
        return IssuerDTE.from_branch(self.get_branch_by_branch_id(branch_id))

    def create(self, user: User) -> None:
        with self._session() as session:
            self._insert(session, user)
        logger.info(f"Created user with NIT {user.nit} and {len(user.branches)} branches")

    def get_by_nit(self, nit: str) -> User:
        with self._session() as session:
            user = session.execute(
                select(User).options(selectinload(User.branches)).where(User.nit == nit)
            ).scalar_one_or_none()

        if user is None:
            raise RecordNotFoundError(f"No user with NIT {nit}")
        return user

    def get_branch_by_branch_id(self, branch_id: int) -> BranchOffice:
        with self._session() as session:
            branch = session.execute(
                select(BranchOffice).options(joinedload(BranchOffice.user))
                .where(BranchOffice.id == branch_id)
            ).scalar_one_or_none()

        if branch is None:
            raise RecordNotFoundError(f"No branch with id {branch_id}")
        return branch

    def get_branch_by_api_key(self, api_key: str) -> BranchOffice:
        with self._session() as session:
            branch = session.execute(
                select(BranchOffice).options(joinedload(BranchOffice.user))
                .where(BranchOffice.api_key == api_key, BranchOffice.is_active.is_(True))
            ).scalar_one_or_none()

        if branch is None:
            raise RecordNotFoundError(f"No active branch with api key {api_key}")
        return branch
