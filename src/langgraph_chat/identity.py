from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .config import Settings
from .errors import ChatApiError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UserIdentity:
    """Identity claims handed over by the auth gate. Read-only."""

    email: str | None = None
    email_verified: bool = False

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any] | None) -> "UserIdentity | None":
        if not claims:
            return None
        return cls(
            email=claims.get("email") or None,
            email_verified=bool(claims.get("email_verified")),
        )

    @property
    def is_verified(self) -> bool:
        return bool(self.email) and self.email_verified


def scoping_user_id(user: UserIdentity | None) -> str | None:
    """Return the user-scoping token: the email, only when present and verified."""
    if user is not None and user.is_verified:
        return user.email
    return None


def get_mock_user(email: str | None) -> UserIdentity | None:
    """Build the stand-in user used by preview deployments."""
    if not email or "@" not in email:
        return None
    return UserIdentity(email=email, email_verified=True)


def resolve_identity(
    settings: Settings,
    claims: Mapping[str, Any] | None = None,
    *,
    mock_email: str | None = None,
) -> UserIdentity | None:
    """Resolve the current user the way the auth gate would.

    Preview deployments accept a mock email (falling back to ``MOCK_USER_EMAIL``)
    and refuse access without one. Elsewhere the identity provider's claims are
    used as-is.
    """
    if settings.is_preview:
        user = get_mock_user(mock_email or settings.mock_user_email)
        if user is None:
            raise ChatApiError("Login required: no mock user configured for preview environment")
        logger.info("[AUTH] Using mock user %s (preview environment)", user.email)
        return user
    return UserIdentity.from_claims(claims)
