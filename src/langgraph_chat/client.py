"""Client for the remote LangGraph agent runtime."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Sequence

from langgraph_sdk import get_client

from .config import Settings, get_settings
from .errors import ChatApiError, describe_failure, transport_failure_from
from .identity import UserIdentity, scoping_user_id
from .stream import RunStream, is_empty_part

logger = logging.getLogger(__name__)

SERVER_ERROR_THREAD = "Server error while creating thread. Please try again later."
SERVER_ERROR_STREAM = (
    "Internal server error occurred while streaming messages. Please try again later."
)


class ChatApiClient:
    """Thread, state and run-stream operations against a LangGraph deployment.

    Usage:
        api = ChatApiClient(get_settings())
        thread = await api.create_thread()
        async with await api.send_message(thread["thread_id"], messages) as stream:
            async for event in stream:
                ...
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def _client(self):
        logger.debug("[CHAT_API] Using API URL: %s", self.settings.api_url)
        return get_client(url=self.settings.api_url, api_key=self.settings.langgraph_api_key)

    async def create_assistant(self, graph_id: str) -> dict[str, Any]:
        async with self._client() as client:
            try:
                return await client.assistants.create(graph_id=graph_id)
            except Exception as exc:
                raise ChatApiError("Failed to create assistant", exc) from exc

    async def create_thread(self) -> dict[str, Any]:
        async with self._client() as client:
            try:
                return await client.threads.create()
            except Exception as exc:
                logger.error("[CHAT_API] Failed to create thread: %s", exc)
                message = describe_failure(
                    "Failed to create thread",
                    transport_failure_from(exc),
                    server_error_message=SERVER_ERROR_THREAD,
                    include_status=False,
                    include_detail=False,
                )
                raise ChatApiError(message, exc) from exc

    async def get_thread_state(self, thread_id: str) -> dict[str, Any]:
        async with self._client() as client:
            try:
                return await client.threads.get_state(thread_id)
            except Exception as exc:
                raise ChatApiError(f"Failed to get thread state for thread {thread_id}", exc) from exc

    async def update_state(
        self,
        thread_id: str,
        new_state: dict[str, Any],
        as_node: str | None = None,
    ) -> dict[str, Any]:
        """Overwrite thread state as if ``as_node`` had produced it."""
        async with self._client() as client:
            try:
                return await client.threads.update_state(thread_id, new_state, as_node=as_node)
            except Exception as exc:
                raise ChatApiError(f"Failed to update state for thread {thread_id}", exc) from exc

    async def send_message(
        self,
        thread_id: str,
        messages: Sequence[dict[str, Any]],
        command: dict[str, Any] | None = None,
        user: UserIdentity | None = None,
    ) -> RunStream:
        """Start a streamed run on ``thread_id`` and return its event stream.

        The first stream element is pulled before returning, so an unreachable
        server, a stalled stream or an empty stream fail here rather than during
        consumption.
        """
        assistant_id = self.settings.assistant_id
        if not assistant_id:
            raise ChatApiError("LANGGRAPH_ASSISTANT_ID is not configured")
        if not thread_id:
            raise ChatApiError("Thread ID is required")
        if not isinstance(messages, (list, tuple)):
            raise ChatApiError("Messages must be a list")

        user_id = scoping_user_id(user)
        logger.info(
            "[CHAT_API] send_message thread_id=%s messages=%d command=%s user_id=%s assistant_id=%s",
            thread_id,
            len(messages),
            bool(command),
            user_id,
            assistant_id,
        )

        configurable: dict[str, Any] = {"thread_id": thread_id, "assistant_id": assistant_id}
        if user_id:
            configurable["user_id"] = user_id

        kwargs: dict[str, Any] = {
            "input": {"messages": list(messages)} if messages else None,
            "config": {"configurable": configurable},
            "stream_mode": list(self.settings.stream_modes),
        }
        if command:
            kwargs["command"] = command

        # The client stays open for the lifetime of the returned stream.
        client = self._client()
        stream = None
        try:
            async with asyncio.timeout(self.settings.stream_init_timeout):
                stream = client.runs.stream(thread_id, assistant_id, **kwargs)
                if inspect.isawaitable(stream):
                    stream = await stream
                first = await _next_part(stream, thread_id)
        except TimeoutError as exc:
            logger.error("[CHAT_API] Stream initialization timed out for thread %s", thread_id)
            await _close_quietly(stream, client)
            raise ChatApiError(
                f"Stream initialization timed out after {self.settings.stream_init_timeout:g}s "
                f"for thread {thread_id}",
                exc,
            ) from exc
        except ChatApiError:
            await _close_quietly(stream, client)
            raise
        except Exception as exc:
            logger.exception("[CHAT_API] Failed to send message to thread %s", thread_id)
            await _close_quietly(stream, client)
            message = describe_failure(
                f"Failed to send message to thread {thread_id}",
                transport_failure_from(exc),
                server_error_message=SERVER_ERROR_STREAM,
            )
            raise ChatApiError(message, exc) from exc

        if is_empty_part(first):
            await _close_quietly(stream, client)
            raise ChatApiError(f"Invalid message received from stream for thread {thread_id}")

        return RunStream(thread_id, first, stream, client=client)


async def _next_part(stream: Any, thread_id: str) -> Any:
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        raise ChatApiError(f"No messages received from stream for thread {thread_id}") from None


async def _close_quietly(*resources: Any) -> None:
    for resource in resources:
        aclose = getattr(resource, "aclose", None)
        if aclose is None:
            continue
        try:
            await aclose()
        except Exception as exc:  # pragma: no cover - best effort on an already failed stream
            logger.debug("[CHAT_API] Ignoring error while closing %r: %s", resource, exc)
