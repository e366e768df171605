"""Configuration module for toolchat-server using pydantic-settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ToolchatServerSettings(BaseSettings):
    """Main configuration settings for toolchat-server.

    All settings can be overridden via environment variables with the TOOLCHAT_ prefix.
    For example, TOOLCHAT_OLLAMA_HOST will override the ollama_host setting.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Model provider
    ollama_host: str = "http://localhost:11434"
    model: str = "llama3.2:latest"
    provider_timeout: float = 120.0

    # Tools
    tool_timeout: float = 30.0
    x_enabled: bool = False
    x_api_base_url: str = "https://api.twitter.com/2"
    x_bearer_token: str | None = None

    # Conversations
    busy_policy: Literal["queue", "reject"] = "queue"
    storage: Literal["memory", "json"] = "memory"
    data_dir: str = "."
    sessions_dir: str = "conversations"

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="TOOLCHAT_")

    @property
    def resolved_sessions_dir(self) -> Path:
        """Get the full path to the conversations directory."""
        return Path(self.data_dir) / self.sessions_dir
