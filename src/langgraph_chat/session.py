from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from .client import ChatApiClient
from .identity import UserIdentity
from .interrupts import Decision, InterruptAction, resume_command
from .stream import RunStream

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ThreadSnapshot:
    """Messages and pending interrupt of a thread loaded from the server."""

    thread_id: str
    messages: list[dict[str, Any]] = field(default_factory=list)
    interrupt: Any = None


def _pending_interrupt(state: dict[str, Any]) -> Any:
    raw = state.get("interrupts") or []
    # Newer servers key interrupts by task id
    if isinstance(raw, dict):
        interrupts = [item for items in raw.values() for item in items]
    else:
        interrupts = list(raw)
    if not interrupts:
        for task in state.get("tasks") or []:
            interrupts.extend(task.get("interrupts") or [])
    if not interrupts:
        return None
    first = interrupts[0]
    return first.get("value") if isinstance(first, dict) else first


class ChatSession:
    """One UI session: the active thread and at most one open run stream.

    The thread id is written only by ``new_thread``, ``switch_to_thread`` and the
    lazy creation on first ``send``. All of them run under the same lock as
    ``send`` so a send always targets the latest thread.
    """

    def __init__(self, api: ChatApiClient, user: UserIdentity | None = None) -> None:
        self.api = api
        self._user = user
        self._thread_id: str | None = None
        self._stream: RunStream | None = None
        # Pending interrupt of a thread loaded from the server or of a closed run
        self._interrupt: Any = None
        self._lock = asyncio.Lock()

    @property
    def thread_id(self) -> str | None:
        return self._thread_id

    @property
    def user(self) -> UserIdentity | None:
        return self._user

    @property
    def interrupt(self) -> Any:
        """Interrupt the active thread is paused on, until it is answered."""
        if self._stream is not None and self._stream.interrupt is not None:
            return self._stream.interrupt
        return self._interrupt

    async def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None and not stream.closed:
            logger.info("[SESSION] Closing open stream on thread %s", stream.thread_id)
            await stream.aclose()

    async def _create_thread(self) -> str:
        thread = await self.api.create_thread()
        self._thread_id = thread["thread_id"]
        logger.info("[SESSION] Created thread %s", self._thread_id)
        return self._thread_id

    async def set_identity(self, user: UserIdentity | None) -> None:
        """Switch the authenticated user. A different identity starts a fresh thread."""
        async with self._lock:
            if user == self._user:
                return
            self._user = user
            await self._close_stream()
            self._thread_id = None
            self._interrupt = None
            logger.info("[SESSION] Identity changed, thread reset")

    async def new_thread(self) -> str:
        async with self._lock:
            await self._close_stream()
            self._interrupt = None
            return await self._create_thread()

    async def switch_to_thread(self, thread_id: str) -> ThreadSnapshot:
        """Make ``thread_id`` active and return its remote messages."""
        async with self._lock:
            self._interrupt = self.interrupt
            await self._close_stream()
            state = await self.api.get_thread_state(thread_id)
            self._thread_id = thread_id
            values = state.get("values") or {}
            messages = values.get("messages") if isinstance(values, dict) else None
            self._interrupt = _pending_interrupt(state)
            logger.info("[SESSION] Switched to thread %s", thread_id)
            if self._interrupt is not None:
                logger.info("[SESSION] Thread %s is paused on an interrupt", thread_id)
            return ThreadSnapshot(
                thread_id=thread_id,
                messages=list(messages or []),
                interrupt=self._interrupt,
            )

    async def send(
        self,
        messages: Sequence[dict[str, Any]],
        command: dict[str, Any] | None = None,
    ) -> RunStream:
        """Send messages (or a command) on the active thread, creating it if needed."""
        async with self._lock:
            # A failed send leaves the pending interrupt in place
            self._interrupt = self.interrupt
            await self._close_stream()
            thread_id = self._thread_id or await self._create_thread()
            self._stream = await self.api.send_message(
                thread_id,
                list(messages),
                command=command,
                user=self._user,
            )
            self._interrupt = None
            return self._stream

    async def send_text(self, text: str) -> RunStream:
        return await self.send([{"type": "human", "content": text}])

    async def resume(self, action: InterruptAction | Decision) -> RunStream:
        """Answer the pending interrupt, resuming the paused run."""
        return await self.send([], command=resume_command(action))

    async def close(self) -> None:
        async with self._lock:
            await self._close_stream()
