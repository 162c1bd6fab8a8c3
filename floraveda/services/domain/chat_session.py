"""
Domain service: chat sessions primed with an analysis result.

A session owns the report it was created from and an opaque conversational
handle. The grounding instruction is fixed when the session is opened.
"""
import logging
from dataclasses import dataclass, field
from textwrap import dedent
from typing import AsyncIterator, Protocol

from floraveda.domain.models import PlantReport

logger = logging.getLogger(__name__)


class ChatHandle(Protocol):
    """Live conversation with the model."""

    def send_streaming(self, text: str) -> AsyncIterator[str]:
        """Send a user message and yield the reply as text fragments."""
        ...


class ChatProvider(Protocol):
    """Opens conversations with a fixed system instruction."""

    def open_chat(self, system_instruction: str) -> ChatHandle:
        ...


CHAT_INSTRUCTION_TEMPLATE = dedent("""\
    You are 'Dr. Green', a friendly but highly professional Plant Doctor and Botanist.

    The user is located in {country}.
    The plant in question is "{common_name}" ({scientific_name}).

    Key context from your diagnosis:
    - Health Status: {status}
    - Issues: {issues}
    - Remedy: {remedy}
    - Detailed Diagnosis: {diagnosis}

    Your goal:
    - Answer questions about this specific plant's health, care and Vastu placement.
    - Use a reassuring, doctor-like tone (e.g. "I recommend...", "The prognosis is...").
    - Be concise and practical.
    - If the plant is SICK, prioritize healing advice based on the actionable steps identified.
    """)


def build_chat_instruction(report: PlantReport, country: str) -> str:
    """Grounding instruction for a follow-up chat about a diagnosed plant."""
    health = report.health_assessment
    return CHAT_INSTRUCTION_TEMPLATE.format(
        country=country,
        common_name=report.common_name,
        scientific_name=report.scientific_name,
        status=health.status.value,
        issues=", ".join(health.issues),
        remedy=health.remedy,
        diagnosis=health.detailed_diagnosis,
    )


@dataclass(frozen=True)
class ChatSession:
    """Conversation grounded in one plant report."""
    report: PlantReport
    country: str
    system_instruction: str
    handle: ChatHandle = field(repr=False)

    def send_streaming(self, text: str) -> AsyncIterator[str]:
        return self.handle.send_streaming(text)


class ChatSessionManager:
    """Creates chat sessions from analysis results."""

    def __init__(self, provider: ChatProvider):
        self.provider = provider

    def create_session(self, report: PlantReport, country: str) -> ChatSession:
        """
        Open a chat session primed with a report.

        Args:
            report: Successful analysis result
            country: Country the user is located in

        Returns:
            ChatSession with an immutable grounding instruction
        """
        instruction = build_chat_instruction(report, country)
        handle = self.provider.open_chat(instruction)
        logger.info(f"Opened chat session for '{report.common_name}' ({country})")
        return ChatSession(
            report=report,
            country=country,
            system_instruction=instruction,
            handle=handle,
        )
