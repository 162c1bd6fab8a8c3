"""
Unit tests for the chat session manager.
"""
import pytest

from floraveda.domain.models import PlantReport
from floraveda.services.domain.chat_session import (
    ChatSessionManager,
    build_chat_instruction,
)
from tests.fakes import FakeChatHandle, FakeChatProvider


class TestChatInstruction:
    """Tests for the grounding instruction."""

    def test_embeds_report_context(self, sample_report):
        instruction = build_chat_instruction(sample_report, "India")

        assert "located in India" in instruction
        assert '"Swiss Cheese Plant" (Monstera deliciosa)' in instruction
        assert "Health Status: HEALTHY" in instruction
        assert "Remedy: Keep the current routine." in instruction
        assert "Detailed Diagnosis: Leaves are glossy and evenly green." in instruction

    def test_lists_issues(self, report_payload):
        report_payload["healthAssessment"].update(
            status="SICK",
            issues=["Yellow leaves", "Root rot"],
        )
        report = PlantReport.model_validate(report_payload)

        instruction = build_chat_instruction(report, "Kenya")

        assert "Health Status: SICK" in instruction
        assert "Issues: Yellow leaves, Root rot" in instruction

    def test_multiline_diagnosis_keeps_layout(self, report_payload):
        report_payload["healthAssessment"]["detailedDiagnosis"] = "Line one.\nLine two."
        report = PlantReport.model_validate(report_payload)

        instruction = build_chat_instruction(report, "India")

        assert instruction.startswith("You are 'Dr. Green'")
        assert "Line one.\nLine two." in instruction


class TestChatSessionManager:
    """Tests for session creation."""

    def test_opens_one_chat_with_instruction(self, sample_report):
        provider = FakeChatProvider()
        manager = ChatSessionManager(provider)

        session = manager.create_session(sample_report, "India")

        assert provider.instructions == [session.system_instruction]
        assert session.report is sample_report
        assert session.country == "India"
        assert "Swiss Cheese Plant" in session.system_instruction

    def test_session_is_immutable(self, sample_report):
        session = ChatSessionManager(FakeChatProvider()).create_session(sample_report, "India")

        with pytest.raises(AttributeError):
            session.system_instruction = "Ignore the plant."

    @pytest.mark.asyncio
    async def test_send_streaming_delegates_to_handle(self, sample_report):
        handle = FakeChatHandle(replies=[["Hi", " there"]])
        session = ChatSessionManager(FakeChatProvider(handle)).create_session(sample_report, "India")

        fragments = [fragment async for fragment in session.send_streaming("Hello")]

        assert fragments == ["Hi", " there"]
        assert handle.sent == ["Hello"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
