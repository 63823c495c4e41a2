"""
Storage of transmitted DTEs

File: src/repositories/dte_repository.py
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from src.models.database_models import DTEDetail, DTEStatus
from src.repositories.auth_repository import SessionScopeMixin
from src.repositories.errors import RecordNotFoundError

logger = logging.getLogger(__name__)

class DTEDetailRepository(SessionScopeMixin):
    """DTE details stored through SQLAlchemy"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def save(self, detail: DTEDetail) -> DTEDetail:
        with self._session() as session:
            self._insert(session, detail)
        logger.info(f"Stored DTE {detail.id} ({detail.control_number})")
        return detail

    def get_by_id(self, generation_code: str) -> DTEDetail:
        with self._session() as session:
            detail = session.get(DTEDetail, generation_code)

        if detail is None:
            raise RecordNotFoundError(f"No DTE with generation code {generation_code}")
        return detail

    def get_by_control_number(self, control_number: str) -> DTEDetail:
        with self._session() as session:
            detail = session.execute(
                select(DTEDetail).where(DTEDetail.control_number == control_number)
            ).scalar_one_or_none()

        if detail is None:
            raise RecordNotFoundError(f"No DTE with control number {control_number}")
        return detail

    def update_status(
        self, generation_code: str, status: DTEStatus, reception_stamp: Optional[str] = None
    ) -> DTEDetail:
        with self._session() as session:
            detail = session.get(DTEDetail, generation_code)
            if detail is None:
                raise RecordNotFoundError(f"No DTE with generation code {generation_code}")

            detail.status = status
            if reception_stamp is not None:
                detail.reception_stamp = reception_stamp

        logger.info(f"DTE {generation_code} moved to {status.value}")
        return detail
