"""Error type shared by every chat API operation."""

from __future__ import annotations

import json
from dataclasses import dataclass

import httpx


class ChatApiError(Exception):
    """Error raised by the chat API client.

    The exception that triggered it, if any, is kept on ``original_error``.
    """

    def __init__(self, message: str, original_error: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


@dataclass(slots=True)
class TransportFailure:
    """What went wrong on the wire, extracted from a transport exception."""

    detail: str
    status_code: int | None = None
    body: str | None = None


def _decode_body(response: httpx.Response) -> str | None:
    try:
        text = response.text
    except (httpx.ResponseNotRead, UnicodeDecodeError):
        return None
    if not text:
        return None
    try:
        return json.dumps(json.loads(text), ensure_ascii=False)
    except ValueError:
        return text


def transport_failure_from(error: BaseException) -> TransportFailure:
    """Classify a transport exception into a ``TransportFailure``."""
    if isinstance(error, httpx.HTTPStatusError):
        return TransportFailure(
            detail=str(error),
            status_code=error.response.status_code,
            body=_decode_body(error.response),
        )
    return TransportFailure(detail=str(error))


def describe_failure(
    base_message: str,
    failure: TransportFailure,
    *,
    server_error_message: str | None = None,
    include_status: bool = True,
    include_detail: bool = True,
) -> str:
    """Fold status code, response body and detail into one readable message."""
    message = base_message
    if failure.status_code == 500 and server_error_message:
        message = server_error_message
    elif failure.status_code and include_status:
        message += f" (Status {failure.status_code})"

    if failure.body:
        message += f": {failure.body}"

    if include_detail and failure.detail:
        message += f"\nDetails: {failure.detail}"
    return message
