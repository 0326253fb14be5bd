from __future__ import annotations

from functools import lru_cache

import httpx
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the LangGraph chat client."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Remote agent runtime. Without an explicit URL the client talks to the
    # same-origin relay mounted under /api.
    langgraph_api_url: str | None = Field(default=None, alias="LANGGRAPH_API_URL")
    app_origin: str = Field(default="http://localhost:3000", alias="APP_ORIGIN")
    langgraph_api_key: str | None = Field(default=None, alias="LANGGRAPH_API_KEY")
    assistant_id: str = Field(default="", alias="LANGGRAPH_ASSISTANT_ID")

    # Streaming
    stream_init_timeout: float = Field(default=10.0, alias="STREAM_INIT_TIMEOUT")
    stream_modes: list[str] = Field(
        default_factory=lambda: ["updates", "messages"], alias="STREAM_MODES"
    )

    # Auth gate
    auth_base_url: str | None = Field(default=None, alias="AUTH0_BASE_URL")
    deployment_environment: str | None = Field(
        default=None, alias="AZURE_STATIC_WEBAPPS_ENVIRONMENT"
    )
    mock_user_email: str | None = Field(default=None, alias="MOCK_USER_EMAIL")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def api_url(self) -> str:
        """Base URL of the LangGraph API, falling back to the app's /api relay."""
        if self.langgraph_api_url:
            return self.langgraph_api_url
        return str(httpx.URL(self.app_origin).join("/api"))

    @property
    def is_preview(self) -> bool:
        """Preview deployments (or ones without an identity provider) use mock users."""
        return self.deployment_environment == "preview" or not self.auth_base_url


@lru_cache
def get_settings() -> Settings:
    """Return memoized settings so multiple imports share a single instance."""

    return Settings()  # type: ignore[call-arg]
