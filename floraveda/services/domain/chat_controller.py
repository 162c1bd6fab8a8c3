"""
Domain service: streaming chat exchanges over a chat session.

Each exchange appends a user turn and a model placeholder, then fills the
placeholder fragment by fragment. Only one exchange runs at a time; the
transcript is updated in place so observers can render partial answers.
"""
import asyncio
import logging
from enum import Enum
from typing import AsyncIterator, Dict, Iterator, List, Optional

from floraveda.domain.exceptions import ChatErrorKind, ChatStreamError, ExchangeInProgressError
from floraveda.domain.models import ChatRole, ChatTurn
from floraveda.services.domain.chat_session import ChatSession

logger = logging.getLogger(__name__)


CHAT_ERROR_MESSAGES: Dict[ChatErrorKind, str] = {
    ChatErrorKind.RATE_LIMITED: "I'm receiving too many requests right now. Please try again in a moment.",
    ChatErrorKind.UNAVAILABLE: "The service is temporarily unavailable.",
    ChatErrorKind.SAFETY_BLOCKED: "I cannot provide an answer to that request due to safety guidelines.",
    ChatErrorKind.CONNECTION: "I encountered a connection error. Please try again.",
}

# First match wins
_DESCRIPTION_MARKERS = (
    ("429", ChatErrorKind.RATE_LIMITED),
    ("503", ChatErrorKind.UNAVAILABLE),
    ("safety", ChatErrorKind.SAFETY_BLOCKED),
)


class ExchangeState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    SETTLED = "settled"


class ExchangeOutcome(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


def classify_chat_failure(error: BaseException) -> ChatErrorKind:
    """
    Map a failed exchange to an error kind.

    Errors already classified by the provider adapter keep their kind.
    Anything else is matched on its description, falling back to a
    connection error.
    """
    if isinstance(error, ChatStreamError) and error.kind is not ChatErrorKind.CONNECTION:
        return error.kind

    description = str(error)
    for marker, kind in _DESCRIPTION_MARKERS:
        if marker in description:
            return kind
    return ChatErrorKind.CONNECTION


class Transcript:
    """Ordered chat turns, addressable by id."""

    def __init__(self):
        self._turns: Dict[str, ChatTurn] = {}

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[ChatTurn]:
        return iter(list(self._turns.values()))

    def __contains__(self, turn_id: str) -> bool:
        return turn_id in self._turns

    def append(self, turn: ChatTurn) -> ChatTurn:
        self._turns[turn.id] = turn
        return turn

    def get(self, turn_id: str) -> Optional[ChatTurn]:
        return self._turns.get(turn_id)

    def update(self, turn_id: str, **changes) -> ChatTurn:
        """Replace fields of a turn without moving it."""
        turn = self._turns[turn_id].model_copy(update=changes)
        self._turns[turn_id] = turn
        return turn

    def previous(self, turn_id: str) -> Optional[ChatTurn]:
        """Turn immediately before ``turn_id``, if any."""
        ids = list(self._turns)
        if turn_id not in self._turns:
            return None
        index = ids.index(turn_id)
        return self._turns[ids[index - 1]] if index > 0 else None

    def turns(self) -> List[ChatTurn]:
        return list(self._turns.values())


class ChatController:
    """
    Drives chat exchanges for one session.

    Each exchange runs as its own task and always settles the model turn,
    whether or not anyone reads its updates. ``stream_message`` and
    ``stream_retry`` return an async iterator of turn snapshots, one per
    transcript mutation, or None when the call is a no-op. ``send`` and
    ``retry`` consume those iterators.
    """

    def __init__(self, session: Optional[ChatSession], greeting: Optional[str] = None):
        self.session = session
        self.transcript = Transcript()
        self.is_typing = False
        self.exchange_state = ExchangeState.IDLE
        self.last_outcome: Optional[ExchangeOutcome] = None
        self._exchange_task: Optional[asyncio.Task] = None

        if greeting:
            self.transcript.append(ChatTurn(role=ChatRole.MODEL, text=greeting))

    def stream_message(self, text: str) -> Optional[AsyncIterator[ChatTurn]]:
        """
        Start an exchange for a user message.

        The user turn and the loading placeholder are appended before this
        method returns. Must be called from a running event loop.

        Raises:
            ExchangeInProgressError: If another exchange has not settled yet
        """
        if self.session is None or not text or not text.strip():
            return None
        asyncio.get_running_loop()  # raises outside an event loop, before any mutation
        self._begin_exchange()

        user_turn = self.transcript.append(ChatTurn(role=ChatRole.USER, text=text))
        placeholder = self.transcript.append(
            ChatTurn(role=ChatRole.MODEL, text="", is_loading=True)
        )
        logger.debug(f"Chat exchange started for turn {placeholder.id}")
        return self._start_exchange(user_turn.text, placeholder.id)

    def stream_retry(self, turn_id: str) -> Optional[AsyncIterator[ChatTurn]]:
        """
        Re-run the exchange that produced ``turn_id``, overwriting it in place.

        Only possible when the turn directly follows a user turn.

        Raises:
            ExchangeInProgressError: If another exchange has not settled yet
        """
        if self.session is None:
            return None
        previous = self.transcript.previous(turn_id)
        if previous is None or previous.role is not ChatRole.USER:
            return None
        asyncio.get_running_loop()  # raises outside an event loop, before any mutation
        self._begin_exchange()

        logger.info(f"Retrying chat turn {turn_id}")
        return self._start_exchange(previous.text, turn_id)

    async def send(self, text: str) -> None:
        updates = self.stream_message(text)
        if updates is not None:
            async for _ in updates:
                pass

    async def retry(self, turn_id: str) -> None:
        updates = self.stream_retry(turn_id)
        if updates is not None:
            async for _ in updates:
                pass

    async def settled(self) -> None:
        """Wait until the current exchange, if any, has settled."""
        if self._exchange_task is not None:
            await self._exchange_task

    def _begin_exchange(self) -> None:
        if self.is_typing:
            raise ExchangeInProgressError("A reply is still being generated")
        self.is_typing = True
        self.exchange_state = ExchangeState.SENDING

    def _start_exchange(self, text: str, turn_id: str) -> AsyncIterator[ChatTurn]:
        updates: asyncio.Queue = asyncio.Queue()
        self._exchange_task = asyncio.create_task(self._exchange(text, turn_id, updates))
        return _follow(updates)

    async def _exchange(self, text: str, turn_id: str, updates: asyncio.Queue) -> None:
        try:
            updates.put_nowait(
                self.transcript.update(turn_id, text="", is_loading=True, is_error=False)
            )

            fragments = self.session.send_streaming(text)
            self.exchange_state = ExchangeState.STREAMING
            full_text = ""
            async for fragment in fragments:
                full_text += fragment
                updates.put_nowait(
                    self.transcript.update(turn_id, text=full_text, is_loading=False)
                )

            self.transcript.update(turn_id, is_loading=False, is_error=False)
            self.last_outcome = ExchangeOutcome.SUCCESS
        except asyncio.CancelledError:
            logger.warning(f"Chat exchange for turn {turn_id} was cancelled")
            self._fail_turn(turn_id, ChatErrorKind.CONNECTION, updates)
            raise
        except Exception as e:
            kind = classify_chat_failure(e)
            logger.warning(f"Chat exchange for turn {turn_id} failed ({kind.value}): {e}")
            self._fail_turn(turn_id, kind, updates)
        finally:
            self.exchange_state = ExchangeState.SETTLED
            self.is_typing = False
            updates.put_nowait(None)

    def _fail_turn(self, turn_id: str, kind: ChatErrorKind, updates: asyncio.Queue) -> None:
        self.last_outcome = ExchangeOutcome.ERROR
        updates.put_nowait(
            self.transcript.update(
                turn_id,
                text=CHAT_ERROR_MESSAGES[kind],
                is_loading=False,
                is_error=True,
            )
        )


async def _follow(updates: asyncio.Queue) -> AsyncIterator[ChatTurn]:
    # None marks the end of the exchange
    while True:
        turn = await updates.get()
        if turn is None:
            return
        yield turn
