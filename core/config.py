"""Configuration model and loading.

All settings can be overridden by environment variables (upper-case field
names) or a ``.env`` file in the working directory.
"""

from pathlib import Path
from urllib.parse import urlparse

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.exceptions import ConfigurationError

DEFAULT_TARGET_URL = "https://api.perplexity.ai/chat/completions"
ENV_FILE = Path.cwd() / ".env"


class Config(BaseSettings):
    """Immutable proxy configuration, built once at startup."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    port: int = Field(default=3000, ge=1, le=65535)
    host: str = "0.0.0.0"
    target_url: str = DEFAULT_TARGET_URL
    debug: bool = False
    log_dir: Path = Path("logs")
    # Seconds uvicorn waits for in-flight requests before cancelling them
    shutdown_timeout: int = 10


def validate_config(config: Config) -> Config:
    """Reject configurations the proxy cannot serve with."""
    target = config.target_url.strip()
    if not target:
        raise ConfigurationError("TARGET_URL is not set")

    parsed = urlparse(target)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"TARGET_URL must be an absolute http(s) URL, got {target!r}")
    return config


def load_config(**overrides) -> Config:
    """Load configuration from the environment and validate it."""
    try:
        config = Config(**overrides)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e
    return validate_config(config)
