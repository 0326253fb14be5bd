"""Terminal chat front-end.

Streams assistant replies as they arrive and shows a prompt whenever the agent
pauses for a human decision. Slash commands:

    /new            start a fresh thread
    /switch <id>    load an existing thread
    /thread         show the active thread id
    /quit           leave
"""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from typing import Any, Awaitable, Callable, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

from .errors import ChatApiError
from .interrupts import InterruptAction, InterruptKind, InterruptPrompt, classify_interrupt
from .session import ChatSession
from .stream import EventKind, RunStream

logger = logging.getLogger(__name__)

AskFn = Callable[[str, Sequence[str]], Awaitable[str]]

ACTION_LABELS: dict[InterruptAction, str] = {
    InterruptAction.OPEN_URL: "open",
    InterruptAction.CANCEL: "cancel",
    InterruptAction.YES: "yes",
    InterruptAction.NO: "no",
}

AI_TYPES = {"ai", "AIMessageChunk", "AIMessage", "assistant"}


def message_text(message: Any) -> str:
    """Plain text of a message dict whose content may be a list of blocks."""
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return ""


def message_role(message: dict[str, Any]) -> str:
    kind = message.get("type") or message.get("role") or "unknown"
    if kind in AI_TYPES:
        return "assistant"
    if kind in ("human", "user"):
        return "user"
    return kind


async def _prompt_ask(question: str, choices: Sequence[str]) -> str:
    if choices:
        return await asyncio.to_thread(Prompt.ask, question, choices=list(choices))
    return await asyncio.to_thread(Prompt.ask, question)


class ChatConsole:
    def __init__(
        self,
        session: ChatSession,
        *,
        console: Console | None = None,
        ask: AskFn | None = None,
        open_url: Callable[[str], Any] = webbrowser.open,
    ) -> None:
        self.session = session
        self.console = console or Console()
        self._ask = ask or _prompt_ask
        self._open_url = open_url
        self._printed: dict[str, int] = {}

    async def run(self) -> None:
        self.console.print(Panel.fit("[bold cyan]LangGraph chat[/bold cyan]\n[dim]/help for commands[/dim]"))
        try:
            while True:
                if self.session.interrupt is not None:
                    await self.handle_interrupt()
                    continue
                text = (await self._ask("[bold green]You[/bold green]", [])).strip()
                if not text:
                    continue
                if text.startswith("/"):
                    if not await self.handle_command(text):
                        break
                    continue
                await self.send(text)
        finally:
            await self.session.close()

    async def handle_command(self, text: str) -> bool:
        """Run a slash command. Returns False when the console should exit."""
        name, _, arg = text.partition(" ")
        try:
            if name == "/quit":
                return False
            if name == "/new":
                thread_id = await self.session.new_thread()
                self.console.print(f"[dim]New thread {thread_id}[/dim]")
            elif name == "/switch" and arg.strip():
                snapshot = await self.session.switch_to_thread(arg.strip())
                self.console.print(f"[dim]Switched to thread {snapshot.thread_id}[/dim]")
                for message in snapshot.messages:
                    self.render_message(message)
            elif name == "/thread":
                self.console.print(f"[dim]Thread: {self.session.thread_id or '(none yet)'}[/dim]")
            else:
                self.console.print(__doc__.split("Slash commands:", 1)[1].rstrip())
        except ChatApiError as exc:
            self.print_error(exc)
        return True

    async def send(self, text: str) -> None:
        try:
            stream = await self.session.send_text(text)
            await self.render_stream(stream)
        except ChatApiError as exc:
            self.print_error(exc)

    async def resume(self, action: InterruptAction) -> None:
        try:
            stream = await self.session.resume(action)
            await self.render_stream(stream)
        except ChatApiError as exc:
            self.print_error(exc)

    async def render_stream(self, stream: RunStream) -> None:
        self._printed.clear()
        streaming = False
        async for event in stream:
            if event.kind is EventKind.MESSAGES_PARTIAL:
                for message in event.data or []:
                    streaming = self._print_delta(message) or streaming
            elif event.kind is EventKind.MESSAGES:
                # messages-tuple mode: [chunk, metadata]
                chunk = event.data[0] if isinstance(event.data, (list, tuple)) and event.data else None
                if isinstance(chunk, dict) and message_role(chunk) == "assistant":
                    delta = message_text(chunk)
                    if delta:
                        self.console.print(delta, end="", markup=False, highlight=False)
                        streaming = True
            elif event.kind is EventKind.ERROR:
                self.console.print(f"\n[bold red]Agent error:[/bold red] {event.data}")
        if streaming:
            self.console.print()

    def _print_delta(self, message: Any) -> bool:
        if not isinstance(message, dict) or message_role(message) != "assistant":
            return False
        text = message_text(message)
        key = str(message.get("id"))
        done = self._printed.get(key, 0)
        if len(text) <= done:
            return False
        self.console.print(text[done:], end="", markup=False, highlight=False)
        self._printed[key] = len(text)
        return True

    def render_message(self, message: dict[str, Any]) -> None:
        role = message_role(message)
        style = "green" if role == "user" else "blue" if role == "assistant" else "yellow"
        self.console.print(f"[{style}]{role}[/{style}]: ", end="")
        self.console.print(message_text(message), markup=False, highlight=False)

    def render_interrupt(self, prompt: InterruptPrompt) -> None:
        if prompt.kind is InterruptKind.AUTHORIZATION:
            body = f"Please visit this URL to authorize access:\n\n{prompt.url}"
            title = "Authorization Required"
        elif prompt.kind is InterruptKind.VERIFICATION_REQUIRED:
            body = prompt.message
            title = "Email Verification Required"
        else:
            body = prompt.message
            title = "Interrupt"
        self.console.print(Panel(body, title=title, border_style="yellow"))

    async def handle_interrupt(self) -> None:
        """Show the prompt for the pending interrupt and act on the answer."""
        prompt = classify_interrupt(self.session.interrupt, self.session.user)
        self.render_interrupt(prompt)
        labels = {ACTION_LABELS[action]: action for action in prompt.actions}
        answer = await self._ask("Choose", list(labels))
        action = labels.get(answer.strip().lower())
        if action is None:
            return
        if action is InterruptAction.OPEN_URL:
            logger.info("[CONSOLE] Opening authorization URL")
            self._open_url(prompt.url)
            # The run stays paused until the user comes back from the browser.
            answer = await self._ask("Authorized?", ["yes", "cancel"])
            action = InterruptAction.YES if answer.strip().lower() == "yes" else InterruptAction.CANCEL
        await self.resume(action)

    def print_error(self, exc: ChatApiError) -> None:
        logger.error("[CONSOLE] %s", exc.message)
        self.console.print(f"[bold red]Error:[/bold red] {exc.message}")
