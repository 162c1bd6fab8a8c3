"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample report payloads and reports
- Fake chat handles and providers
- Mock analysis client and consultation service
- FastAPI test client
"""
import copy
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from floraveda.api.dependencies import get_consultation_store
from floraveda.domain.models import PlantReport
from floraveda.main import app
from floraveda.services.application.consultation_service import ConsultationService
from floraveda.services.application.consultation_store import ConsultationStore
from floraveda.services.domain.chat_session import ChatSessionManager
from tests.fakes import FakeChatHandle, FakeChatProvider


# ============================================================
# Sample Data Fixtures
# ============================================================

SAMPLE_REPORT_PAYLOAD = {
    "isMatch": True,
    "verificationMessage": "The photo shows a Monstera deliciosa.",
    "commonName": "Swiss Cheese Plant",
    "scientificName": "Monstera deliciosa",
    "shortDescription": "A climbing aroid with split leaves. Easy to grow indoors.",
    "careInstructions": {
        "water": "Water when the top 5 cm of soil is dry.",
        "sunlight": "Bright, indirect light.",
        "temperature": "18-30 °C",
        "soil": "Chunky, well-draining aroid mix.",
        "fertilizer": "Balanced liquid feed monthly in summer.",
        "pruning": "Remove yellow leaves at the base.",
    },
    "funFact": "The holes are called fenestrations.",
    "toxicity": "Toxic to cats and dogs if chewed.",
    "vastuTips": "Place it in the North or East to invite growth.",
    "vastuDetails": {
        "bestDirections": ["North", "East"],
        "avoidDirections": ["South-West"],
        "energyType": "Growth",
        "placementReason": "Morning light and positive flow support the plant.",
    },
    "stepByStepGuide": [
        "Point 1: Place it near an east window.",
        "Point 2: Water when the topsoil is dry.",
    ],
    "healthAssessment": {
        "status": "HEALTHY",
        "issues": [],
        "remedy": "Keep the current routine.",
        "detailedDiagnosis": "Leaves are glossy and evenly green.",
        "actionableSteps": ["Dust the leaves monthly"],
        "potentialPests": [],
        "confidence": 92,
    },
}


@pytest.fixture
def report_payload() -> dict:
    """A complete report payload as returned by the model."""
    return copy.deepcopy(SAMPLE_REPORT_PAYLOAD)


@pytest.fixture
def sample_report(report_payload) -> PlantReport:
    """A matched, healthy plant report."""
    return PlantReport.model_validate(report_payload)


@pytest.fixture
def mismatch_report(report_payload) -> PlantReport:
    """A report where identification failed."""
    report_payload["isMatch"] = False
    report_payload["verificationMessage"] = "The photo could be several plants."
    return PlantReport.model_validate(report_payload)


# ============================================================
# Mock Service Fixtures
# ============================================================

@pytest.fixture
def chat_handle() -> FakeChatHandle:
    return FakeChatHandle(replies=[["The ", "leaves ", "look fine."]])


@pytest.fixture
def chat_provider(chat_handle) -> FakeChatProvider:
    return FakeChatProvider(chat_handle)


@pytest.fixture
def mock_analyzer(sample_report):
    """Analysis client returning the sample report."""
    analyzer = AsyncMock()
    analyzer.analyze.return_value = sample_report
    return analyzer


@pytest.fixture
def consultation(mock_analyzer, chat_provider) -> ConsultationService:
    """A consultation in UPLOAD wired to fakes."""
    return ConsultationService(
        analyzer=mock_analyzer,
        session_manager=ChatSessionManager(chat_provider),
    )


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def consultation_store(mock_analyzer, chat_provider) -> ConsultationStore:
    """Store creating consultations wired to fakes."""
    return ConsultationStore(
        factory=lambda: ConsultationService(
            analyzer=mock_analyzer,
            session_manager=ChatSessionManager(chat_provider),
            chat_greeting="Hello! I am Dr. Green.",
        ),
        ttl=timedelta(hours=1),
    )


@pytest.fixture
def test_client(consultation_store) -> TestClient:
    """Create a synchronous test client with the store overridden."""
    app.dependency_overrides[get_consultation_store] = lambda: consultation_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
