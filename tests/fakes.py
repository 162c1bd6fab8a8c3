"""
Test doubles for the chat collaborators.
"""
import asyncio
from typing import AsyncIterator, List, Optional


class FakeChatHandle:
    """
    Chat handle replaying scripted replies, one list of fragments per message.

    When ``gate`` is given, every fragment waits for it, so a test can hold
    an exchange open.
    """

    def __init__(self, replies: Optional[List[List[str]]] = None, error: Optional[Exception] = None,
                 fail_after: int = 0, gate: Optional[asyncio.Event] = None):
        self.replies = list(replies or [])
        self.error = error
        self.fail_after = fail_after
        self.gate = gate
        self.sent: List[str] = []

    async def send_streaming(self, text: str) -> AsyncIterator[str]:
        self.sent.append(text)
        fragments = self.replies.pop(0) if self.replies else []
        for index, fragment in enumerate(fragments):
            if self.gate is not None:
                await self.gate.wait()
            if self.error is not None and index == self.fail_after:
                raise self.error
            yield fragment
        if self.error is not None and self.fail_after >= len(fragments):
            raise self.error


class FakeChatProvider:
    """Chat provider recording the instructions it was opened with."""

    def __init__(self, handle: FakeChatHandle = None):
        self.handle = handle or FakeChatHandle()
        self.instructions: List[str] = []

    def open_chat(self, system_instruction: str) -> FakeChatHandle:
        self.instructions.append(system_instruction)
        return self.handle
