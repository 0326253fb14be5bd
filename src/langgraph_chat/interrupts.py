"""Classification of agent interrupts into the prompts shown to the user.

The remote agent pauses with a human-readable interrupt value. Unless it sends a
structured payload (``{"kind": ..., "message": ..., "url": ...}``), the prompt
is picked by matching known phrases in that text:

* an authorization-link phrase -> offer to open the embedded URL, or cancel
* a missing ``user_id`` phrase while the user is not verified -> cancel only
* anything else -> a plain yes/no confirmation
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from .identity import UserIdentity

AUTHORIZATION_PHRASE = "Please use the following link to authorize"
USER_ID_REQUIRED_PHRASE = "user_id is required"

AUTH_URL_PATTERN = re.compile(r"https://accounts\.google\.com[^\s']*")

Decision = Literal["yes", "no"]


class InterruptKind(str, Enum):
    AUTHORIZATION = "authorization"
    VERIFICATION_REQUIRED = "verification_required"
    CONFIRMATION = "confirmation"


class InterruptAction(str, Enum):
    OPEN_URL = "open_url"
    CANCEL = "cancel"
    YES = "yes"
    NO = "no"


@dataclass(slots=True)
class InterruptPrompt:
    kind: InterruptKind
    message: str
    url: str = ""
    actions: list[InterruptAction] = field(default_factory=list)


def interrupt_text(value: Any) -> str:
    """Best-effort text of an interrupt value (string, dict or list of interrupts)."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        if "value" in value:
            return interrupt_text(value["value"])
        for key in ("message", "question", "text"):
            if isinstance(value.get(key), str):
                return value[key]
    if isinstance(value, (list, tuple)) and value:
        return interrupt_text(value[0])
    return str(value)


def extract_authorization_url(text: str) -> str:
    """Return the first authorization URL in ``text``, or an empty string."""
    match = AUTH_URL_PATTERN.search(text or "")
    return match.group(0) if match else ""


def _prompt_for(kind: InterruptKind, message: str, url: str = "") -> InterruptPrompt:
    if kind is InterruptKind.AUTHORIZATION:
        actions = [InterruptAction.OPEN_URL, InterruptAction.CANCEL]
    elif kind is InterruptKind.VERIFICATION_REQUIRED:
        actions = [InterruptAction.CANCEL]
    else:
        actions = [InterruptAction.YES, InterruptAction.NO]
    return InterruptPrompt(kind=kind, message=message, url=url, actions=actions)


def _structured_prompt(value: Any) -> InterruptPrompt | None:
    if isinstance(value, dict) and "value" in value and "kind" not in value:
        value = value["value"]
    if not isinstance(value, dict) or "kind" not in value:
        return None
    try:
        kind = InterruptKind(value["kind"])
    except ValueError:
        return None
    return _prompt_for(kind, str(value.get("message", "")), str(value.get("url", "")))


def classify_interrupt(value: Any, user: UserIdentity | None) -> InterruptPrompt:
    """Decide which prompt to show for an interrupt value."""
    structured = _structured_prompt(value)
    if structured is not None:
        return structured

    text = interrupt_text(value)
    if AUTHORIZATION_PHRASE in text:
        return _prompt_for(InterruptKind.AUTHORIZATION, text, extract_authorization_url(text))

    if USER_ID_REQUIRED_PHRASE in text and (user is None or not user.is_verified):
        return _prompt_for(
            InterruptKind.VERIFICATION_REQUIRED,
            "This operation requires a verified email address. "
            "Please ensure you are logged in with a verified email.",
        )

    return _prompt_for(InterruptKind.CONFIRMATION, text)


def resume_command(action: InterruptAction | Decision) -> dict[str, str]:
    """Build the command that resumes a paused run. Cancel maps to "no"."""
    if action is InterruptAction.OPEN_URL:
        raise ValueError("Opening the authorization URL does not resume the run")
    if isinstance(action, InterruptAction):
        decision = "yes" if action is InterruptAction.YES else "no"
    else:
        decision = action
    return {"resume": decision}
