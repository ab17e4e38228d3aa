"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when a required setting is missing. Fatal at startup."""


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Whatbot configuration. All values come from environment variables."""

    # OpenAI
    openai_api_key: str = Field(default="")
    completion_model: str = Field(default="gpt-3.5-turbo-instruct")
    completion_max_tokens: int = Field(default=2048)
    completion_stop: str = Field(default="\nMe (")
    completion_timeout_seconds: float = Field(default=60.0)
    max_concurrent_completions: int = Field(default=4)

    # Persona
    default_prompt: str = Field(default="")

    # Conversation
    history_window_size: int = Field(default=6)
    max_setup_choices: int = Field(default=6)

    # Transport session
    session_path: Path = Field(default=Path("data/session.json"))

    # WhatsApp bridge
    bridge_url: str = Field(default="http://127.0.0.1:3000")
    bridge_token: str = Field(default="")

    # Bridge event receiver
    event_host: str = Field(default="0.0.0.0")
    event_port: int = Field(default=8443)
    event_public_url: str = Field(default="")
    event_secret: str = Field(default="")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def require_api_key(self) -> str:
        """Return the OpenAI key or raise ConfigurationError if it is unset."""
        if not self.openai_api_key.strip():
            msg = "MISSING API KEY: set OPENAI_API_KEY in the environment or .env"
            raise ConfigurationError(msg)
        return self.openai_api_key

    def get_webhook_url(self) -> str:
        """URL the bridge should post events to."""
        if self.event_public_url:
            return self.event_public_url.rstrip("/") + "/events"
        host = "127.0.0.1" if self.event_host == "0.0.0.0" else self.event_host
        return f"http://{host}:{self.event_port}/events"


settings = Settings()
