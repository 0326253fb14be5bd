"""Entry point for the terminal chat client."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from .client import ChatApiClient
from .config import Settings, get_settings
from .console import ChatConsole
from .errors import ChatApiError
from .identity import UserIdentity, resolve_identity
from .session import ChatSession

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="langgraph-chat", description="Chat with a LangGraph agent.")
    parser.add_argument("--email", help="Mock login email, honoured in preview environments only")
    parser.add_argument(
        "--claims",
        type=Path,
        help="JSON file with the ID token claims issued by the identity provider",
    )
    parser.add_argument("--thread", help="Resume an existing thread instead of starting a new one")
    return parser.parse_args(argv)


def load_claims(path: Path) -> dict[str, Any]:
    try:
        claims = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ChatApiError(f"Failed to read identity claims from {path}", exc) from exc
    if not isinstance(claims, dict):
        raise ChatApiError(f"Identity claims in {path} must be a JSON object")
    return claims


def identity_from_args(settings: Settings, args: argparse.Namespace) -> UserIdentity | None:
    """Outside preview only provider-issued claims can mark an email as verified."""
    claims = load_claims(args.claims) if args.claims else None
    if claims is None and args.email and not settings.is_preview:
        logger.warning("[AUTH] --email without claims is treated as unverified")
        claims = {"email": args.email, "email_verified": False}
    return resolve_identity(settings, claims, mock_email=args.email)


async def _run(args: argparse.Namespace) -> int:
    settings = get_settings()
    if not settings.assistant_id:
        logger.error("LANGGRAPH_ASSISTANT_ID is not configured")
        return 2

    try:
        user = identity_from_args(settings, args)
    except ChatApiError as exc:
        logger.error("%s", exc)
        return 1

    logger.info("Connecting to %s (assistant %s)", settings.api_url, settings.assistant_id)
    session = ChatSession(ChatApiClient(settings), user=user)
    console = ChatConsole(session)
    if args.thread:
        await console.handle_command(f"/switch {args.thread}")
    await console.run()
    return 0


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    try:
        return asyncio.run(_run(parse_args(argv)))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
