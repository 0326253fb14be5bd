from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator

logger = logging.getLogger(__name__)

INTERRUPT_KEY = "__interrupt__"


class EventKind(str, Enum):
    METADATA = "metadata"
    UPDATES = "updates"
    VALUES = "values"
    MESSAGES = "messages"
    MESSAGES_PARTIAL = "messages/partial"
    MESSAGES_COMPLETE = "messages/complete"
    MESSAGES_METADATA = "messages/metadata"
    ERROR = "error"
    END = "end"
    UNKNOWN = "unknown"

    @classmethod
    def from_event(cls, event: str | None) -> "EventKind":
        if not event:
            return cls.UNKNOWN
        try:
            return cls(event)
        except ValueError:
            # Subgraph events arrive as "updates|<namespace>"
            base = event.split("|", 1)[0]
            try:
                return cls(base)
            except ValueError:
                return cls.UNKNOWN


@dataclass(slots=True)
class StreamEvent:
    """One event emitted by a remote run, tagged with its kind."""

    kind: EventKind
    event: str
    data: Any = None

    @classmethod
    def from_raw(cls, raw: Any) -> "StreamEvent":
        """Tag a raw stream part (SDK ``StreamPart`` or plain dict)."""
        if isinstance(raw, dict):
            event, data = raw.get("event"), raw.get("data")
        else:
            event, data = getattr(raw, "event", None), getattr(raw, "data", None)
        event = event or ""
        return cls(kind=EventKind.from_event(event), event=event, data=data)

    @property
    def interrupt(self) -> Any:
        return extract_interrupt(self)


def extract_interrupt(event: StreamEvent) -> Any:
    """Return the interrupt value carried by an ``updates`` event, if any."""
    if event.kind not in (EventKind.UPDATES, EventKind.VALUES):
        return None
    if not isinstance(event.data, dict):
        return None
    interrupts = event.data.get(INTERRUPT_KEY)
    if not interrupts:
        return None
    first = interrupts[0] if isinstance(interrupts, (list, tuple)) else interrupts
    if isinstance(first, dict) and "value" in first:
        return first["value"]
    return first


def is_empty_part(raw: Any) -> bool:
    if raw is None:
        return True
    if isinstance(raw, dict):
        return not raw
    return not getattr(raw, "event", None)


class RunStream:
    """Ordered pass-through over a remote run stream.

    The first part has already been pulled (to validate the stream) and is
    re-emitted before the rest. Interrupts seen along the way are exposed on
    ``interrupt``. Closing the stream, or reading it to the end, closes the
    underlying network iterator and the SDK client that opened it.
    """

    def __init__(
        self,
        thread_id: str,
        first: Any,
        rest: AsyncIterator[Any],
        client: Any = None,
    ) -> None:
        self.thread_id = thread_id
        self.interrupt: Any = None
        self._first: Any = first
        self._first_pending = True
        self._rest = rest
        self._client = client
        self._closed = False

    def __aiter__(self) -> "RunStream":
        return self

    async def __anext__(self) -> StreamEvent:
        if self._closed:
            raise StopAsyncIteration
        if self._first_pending:
            self._first_pending = False
            raw, self._first = self._first, None
        else:
            try:
                raw = await self._rest.__anext__()
            except Exception:
                await self.aclose()
                raise
        event = StreamEvent.from_raw(raw)
        interrupt = extract_interrupt(event)
        if interrupt is not None:
            logger.info("[STREAM] Run on thread %s paused by interrupt", self.thread_id)
            self.interrupt = interrupt
        elif event.kind is EventKind.ERROR:
            logger.error("[STREAM] Remote error on thread %s: %s", self.thread_id, event.data)
        return event

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            aclose = getattr(self._rest, "aclose", None)
            if aclose is not None:
                await aclose()
        finally:
            if self._client is not None:
                await self._client.aclose()

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "RunStream":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
