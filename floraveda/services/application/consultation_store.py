"""
Application service: in-memory registry of consultations.

Consultations are never persisted. Idle ones expire after the configured
TTL and are purged whenever a new consultation is created.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, Tuple

from floraveda.domain.exceptions import ConsultationNotFoundError
from floraveda.services.application.consultation_service import ConsultationService

logger = logging.getLogger(__name__)


class ConsultationStore:
    """Keeps consultations by id with their last access time."""

    def __init__(self, factory: Callable[[], ConsultationService], ttl: timedelta):
        self.factory = factory
        self.ttl = ttl
        self._consultations: Dict[str, Tuple[ConsultationService, datetime]] = {}

    def __len__(self) -> int:
        return len(self._consultations)

    def create(self) -> Tuple[str, ConsultationService]:
        self.cleanup_expired()
        consultation_id = str(uuid.uuid4())
        consultation = self.factory()
        self._consultations[consultation_id] = (consultation, datetime.now())
        logger.info(f"Created consultation {consultation_id}")
        return consultation_id, consultation

    def get(self, consultation_id: str) -> ConsultationService:
        """
        Look up a consultation and refresh its access time.

        Raises:
            ConsultationNotFoundError: If the id is unknown or expired
        """
        entry = self._consultations.get(consultation_id)
        if entry is None or self._is_expired(entry[1]):
            self._consultations.pop(consultation_id, None)
            raise ConsultationNotFoundError(consultation_id)

        consultation = entry[0]
        self._consultations[consultation_id] = (consultation, datetime.now())
        return consultation

    def delete(self, consultation_id: str) -> None:
        if self._consultations.pop(consultation_id, None) is None:
            raise ConsultationNotFoundError(consultation_id)
        logger.info(f"Deleted consultation {consultation_id}")

    def clear(self) -> None:
        self._consultations.clear()

    def cleanup_expired(self) -> int:
        """Remove expired consultations and return how many were dropped."""
        expired = [
            consultation_id
            for consultation_id, (_, last_access) in self._consultations.items()
            if self._is_expired(last_access)
        ]
        for consultation_id in expired:
            del self._consultations[consultation_id]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired consultations")
        return len(expired)

    def _is_expired(self, last_access: datetime) -> bool:
        return datetime.now() - last_access > self.ttl
