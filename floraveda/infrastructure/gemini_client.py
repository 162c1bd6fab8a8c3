"""
Infrastructure layer: Google Gemini client for plant analysis and chat.

Failures are propagated to the caller; this client does not retry.
"""
import logging
from typing import AsyncIterator, Optional

import httpx
from google import genai
from google.genai import errors, types

from floraveda.config import settings
from floraveda.domain.exceptions import (
    ChatErrorKind,
    ChatStreamError,
    EmptyResponseError,
    TransportError,
)
from floraveda.domain.models import AnalysisInput, PlantReport
from floraveda.domain.schema_contract import parse_plant_report, to_provider_schema
from floraveda.infrastructure.api_constants import CHAT_ERROR_KIND_BY_STATUS, GeminiConstants
from floraveda.services.domain.analysis_request import build_analysis_request

logger = logging.getLogger(__name__)


class GeminiChatHandle:
    """
    Conversation backed by a Gemini async chat.

    Provider errors are translated into ChatStreamError carrying the
    error kind, so callers never see SDK error objects.
    """

    def __init__(self, chat):
        self._chat = chat

    async def send_streaming(self, text: str) -> AsyncIterator[str]:
        """
        Send a message and yield the reply fragments in arrival order.

        Args:
            text: User message

        Yields:
            Text fragments (empty string for chunks without text)

        Raises:
            ChatStreamError: If the provider rejects the request or blocks the reply
        """
        try:
            stream = await self._chat.send_message_stream(text)
            async for chunk in stream:
                _raise_if_blocked(chunk)
                yield chunk.text or ""
        except errors.APIError as e:
            kind = CHAT_ERROR_KIND_BY_STATUS.get(e.code, ChatErrorKind.CONNECTION)
            raise ChatStreamError(kind, f"Gemini API error {e.code}: {e.message}") from e
        except httpx.HTTPError as e:
            raise ChatStreamError(ChatErrorKind.CONNECTION, f"Gemini connection error: {e}") from e


def _raise_if_blocked(chunk) -> None:
    feedback = chunk.prompt_feedback
    if feedback is not None and feedback.block_reason:
        raise ChatStreamError(
            ChatErrorKind.SAFETY_BLOCKED,
            f"Prompt blocked by safety filters: {feedback.block_reason}",
        )
    for candidate in chunk.candidates or []:
        if candidate.finish_reason == types.FinishReason.SAFETY:
            raise ChatStreamError(
                ChatErrorKind.SAFETY_BLOCKED,
                "Response stopped by safety filters",
            )


class GeminiClient:
    """
    Client for the Gemini API.

    Issues the structured analysis call and opens chat conversations.
    """

    def __init__(
        self,
        client: Optional[genai.Client] = None,
        analysis_model: Optional[str] = None,
        chat_model: Optional[str] = None,
    ):
        """
        Initialize the client with configuration.

        Args:
            client: SDK client, created from settings when omitted
            analysis_model: Model for analysis calls
            chat_model: Model for chat sessions
        """
        self.client = client or genai.Client(api_key=settings.gemini_api_key or None)
        self.analysis_model = analysis_model or settings.analysis_model
        self.chat_model = chat_model or settings.chat_model

    async def analyze(self, analysis_input: AnalysisInput) -> PlantReport:
        """
        Run one structured analysis call.

        Args:
            analysis_input: Validated analysis input

        Returns:
            PlantReport exactly as returned by the model

        Raises:
            EmptyResponseError: If the model returned no text
            MalformedResponseError: If the text does not match the report schema
            TransportError: If the request failed
        """
        request = build_analysis_request(analysis_input)
        logger.info(
            f"Requesting analysis from {self.analysis_model} "
            f"(image={analysis_input.has_image}, named={analysis_input.claimed_name is not None})"
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=self.analysis_model,
                contents=request.parts,
                config=types.GenerateContentConfig(
                    response_mime_type=GeminiConstants.JSON_MIME_TYPE,
                    response_schema=to_provider_schema(),
                    system_instruction=request.system_instruction,
                ),
            )
        except errors.APIError as e:
            raise TransportError(f"Gemini API error {e.code}: {e.message}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Gemini connection error: {e}") from e

        json_text = response.text
        if not json_text:
            raise EmptyResponseError("No data returned from Gemini")

        return parse_plant_report(json_text)

    def open_chat(self, system_instruction: str) -> GeminiChatHandle:
        """
        Open a chat with a fixed system instruction.

        Args:
            system_instruction: Grounding instruction for the whole conversation

        Returns:
            GeminiChatHandle wrapping the SDK chat
        """
        chat = self.client.aio.chats.create(
            model=self.chat_model,
            config=types.GenerateContentConfig(system_instruction=system_instruction),
        )
        return GeminiChatHandle(chat)


# Singleton instance
_gemini_client: Optional[GeminiClient] = None


def get_gemini_client() -> GeminiClient:
    """
    Get or create the singleton Gemini client instance.

    Returns:
        GeminiClient instance
    """
    global _gemini_client
    if _gemini_client is None:
        _gemini_client = GeminiClient()
    return _gemini_client
