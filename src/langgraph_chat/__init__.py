from __future__ import annotations

from .client import ChatApiClient
from .config import Settings, get_settings
from .errors import ChatApiError
from .identity import UserIdentity
from .interrupts import InterruptKind, InterruptPrompt, classify_interrupt, extract_authorization_url
from .session import ChatSession
from .stream import EventKind, RunStream, StreamEvent

__all__ = [
    "ChatApiClient",
    "ChatApiError",
    "ChatSession",
    "EventKind",
    "InterruptKind",
    "InterruptPrompt",
    "RunStream",
    "Settings",
    "StreamEvent",
    "UserIdentity",
    "classify_interrupt",
    "extract_authorization_url",
    "get_settings",
]
