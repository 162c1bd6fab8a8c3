"""
Dependency injection for FastAPI.
"""
from datetime import timedelta
from typing import Annotated, Optional

from fastapi import Depends

from floraveda.config import settings
from floraveda.infrastructure.gemini_client import get_gemini_client
from floraveda.services.application.consultation_service import ConsultationService
from floraveda.services.application.consultation_store import ConsultationStore
from floraveda.services.domain.chat_session import ChatSessionManager


def create_consultation() -> ConsultationService:
    """
    Factory for a consultation wired to the Gemini client.

    Returns:
        ConsultationService in the UPLOAD state
    """
    client = get_gemini_client()
    return ConsultationService(
        analyzer=client,
        session_manager=ChatSessionManager(client),
        chat_greeting=settings.chat_greeting or None,
    )


# Singleton store
_consultation_store: Optional[ConsultationStore] = None


def get_consultation_store() -> ConsultationStore:
    """
    Get or create the singleton consultation store.

    Returns:
        ConsultationStore instance
    """
    global _consultation_store
    if _consultation_store is None:
        _consultation_store = ConsultationStore(
            factory=create_consultation,
            ttl=timedelta(minutes=settings.session_ttl_minutes),
        )
    return _consultation_store


ConsultationStoreDep = Annotated[ConsultationStore, Depends(get_consultation_store)]


def get_consultation(
    consultation_id: str,
    store: ConsultationStoreDep,
) -> ConsultationService:
    """
    Dependency resolving the consultation named in the path.

    Raises:
        ConsultationNotFoundError: If the id is unknown or expired
    """
    return store.get(consultation_id)


# Type aliases for cleaner route signatures
ConsultationDep = Annotated[ConsultationService, Depends(get_consultation)]
