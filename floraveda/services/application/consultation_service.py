"""
Application service: state machine for one plant consultation.

Sequences the flow UPLOAD -> ANALYZING -> RESULTS | ERROR and wires a
successful analysis into a chat session. No business logic here, only
coordination between the analysis client, the session manager and the
chat controller.
"""
import logging
from typing import AsyncIterator, Dict, List, Optional, Protocol, Set

from floraveda.domain.exceptions import InvalidStateTransitionError
from floraveda.domain.models import AnalysisInput, AppState, ChatTurn, PlantReport
from floraveda.infrastructure.api_constants import GeminiConstants
from floraveda.services.domain.chat_controller import ChatController
from floraveda.services.domain.chat_session import ChatSession, ChatSessionManager
from floraveda.utils.image_helpers import to_data_url

logger = logging.getLogger(__name__)


IDENTIFICATION_FAILED_MESSAGE = (
    "i am so sorry there are many plants with the image i am updating the image and recheck its"
)
ANALYSIS_FAILED_MESSAGE = "We encountered an error processing your request. Please try again."

# Reset is allowed from every state and is handled separately
_TRANSITIONS: Dict[AppState, Set[AppState]] = {
    AppState.UPLOAD: {AppState.ANALYZING},
    AppState.ANALYZING: {AppState.RESULTS, AppState.ERROR},
    AppState.RESULTS: set(),
    AppState.ERROR: set(),
}


class PlantAnalyzer(Protocol):
    async def analyze(self, analysis_input: AnalysisInput) -> PlantReport:
        ...


class ConsultationService:
    """
    One user's consultation flow.

    Exactly one state is active at a time. Only one analysis can be in
    flight, since ``submit`` is only accepted in UPLOAD.
    """

    def __init__(
        self,
        analyzer: PlantAnalyzer,
        session_manager: ChatSessionManager,
        chat_greeting: Optional[str] = None,
    ):
        """
        Initialize the service with dependencies.

        Args:
            analyzer: Client running the analysis call
            session_manager: Factory for chat sessions
            chat_greeting: Opening model turn of each chat transcript
        """
        self.analyzer = analyzer
        self.session_manager = session_manager
        self.chat_greeting = chat_greeting

        self.state = AppState.UPLOAD
        self.image_preview = ""
        self.country = ""
        self.plant_report: Optional[PlantReport] = None
        self.session: Optional[ChatSession] = None
        self.chat: Optional[ChatController] = None
        self.error_message = ""
        self._attempt = 0

    async def submit(
        self,
        country: str,
        image_bytes: Optional[bytes] = None,
        plant_name: Optional[str] = None,
        image_mime_type: str = GeminiConstants.DEFAULT_IMAGE_MIME_TYPE,
    ) -> AppState:
        """
        Analyze a plant and move to RESULTS or ERROR.

        Input is validated before any transition, so rejected input leaves
        the flow in UPLOAD.

        Args:
            country: Country the user is in
            image_bytes: Optional photo of the plant
            plant_name: Optional name claimed by the user
            image_mime_type: Content type of the photo

        Returns:
            The state reached

        Raises:
            AnalysisInputError: If the input is incomplete
            InvalidStateTransitionError: If the flow is not in UPLOAD
        """
        self._require_transition(AppState.ANALYZING)
        analysis_input = AnalysisInput(
            country=country,
            image_bytes=image_bytes,
            claimed_name=plant_name,
            image_mime_type=image_mime_type,
        )

        self.image_preview = to_data_url(analysis_input.image_bytes, analysis_input.image_mime_type)
        self.country = analysis_input.country
        self.error_message = ""
        self._attempt += 1
        attempt = self._attempt
        self._transition(AppState.ANALYZING)

        try:
            report = await self.analyzer.analyze(analysis_input)
            if attempt != self._attempt:
                logger.info("Discarding analysis result of a consultation that was reset")
                return self.state

            if not report.is_match:
                logger.info(f"Identification failed: {report.verification_message}")
                self._fail(IDENTIFICATION_FAILED_MESSAGE)
                return self.state

            session = self.session_manager.create_session(report, analysis_input.country)
        except Exception as e:
            if attempt != self._attempt:
                return self.state
            logger.exception(f"Plant analysis failed: {e}")
            self._fail(ANALYSIS_FAILED_MESSAGE)
            return self.state

        self.plant_report = report
        self.session = session
        self.chat = ChatController(session, greeting=self.chat_greeting)
        self._transition(AppState.RESULTS)
        return self.state

    def reset(self) -> AppState:
        """Tear the flow down and return to UPLOAD."""
        self._attempt += 1
        self.state = AppState.UPLOAD
        self.image_preview = ""
        self.country = ""
        self.plant_report = None
        self.session = None
        self.chat = None
        self.error_message = ""
        logger.info("Consultation reset")
        return self.state

    def send_chat_message(self, text: str) -> Optional[AsyncIterator[ChatTurn]]:
        """Start a chat exchange; None when there is no session or the text is blank."""
        if self.chat is None:
            return None
        return self.chat.stream_message(text)

    def retry_chat_message(self, turn_id: str) -> Optional[AsyncIterator[ChatTurn]]:
        """Re-run a failed chat turn; None when the turn cannot be retried."""
        if self.chat is None:
            return None
        return self.chat.stream_retry(turn_id)

    @property
    def transcript(self) -> List[ChatTurn]:
        return self.chat.transcript.turns() if self.chat else []

    @property
    def is_typing(self) -> bool:
        return self.chat.is_typing if self.chat else False

    def _fail(self, message: str) -> None:
        self.error_message = message
        self._transition(AppState.ERROR)

    def _require_transition(self, target: AppState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidStateTransitionError(
                f"Cannot move from {self.state.value} to {target.value}"
            )

    def _transition(self, target: AppState) -> None:
        self._require_transition(target)
        logger.debug(f"Consultation state {self.state.value} -> {target.value}")
        self.state = target
