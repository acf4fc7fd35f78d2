"""Configuration management for Codecrawl.

Loads environment variables using pydantic-settings for type-safe configuration.
API endpoints, credentials, tokenization and metrics tuning parameters are defined here.
"""

import os
from functools import lru_cache
from pathlib import Path
from threading import Lock

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_LOADED = False
_ENV_LOCK = Lock()

# Encodings shipped with tiktoken
SUPPORTED_ENCODINGS: frozenset[str] = frozenset(
    {"o200k_base", "cl100k_base", "p50k_base", "p50k_edit", "r50k_base", "gpt2"}
)

CLOUD_API_URL = "https://api.irere.dev"


def _resolve_env_file() -> str | None:
    """Locate the .env file regardless of the current working directory.

    Preference order:
        1. CODECRAWL_ENV_FILE environment variable (explicit override)
        2. Current working directory (common for local runs)
        3. Ancestors of this file (covers package execution from a checkout)
    """
    override = os.getenv("CODECRAWL_ENV_FILE")
    if override:
        override_path = Path(override).expanduser()
        if override_path.is_file():
            return str(override_path)

    cwd_candidate = Path.cwd() / ".env"
    if cwd_candidate.is_file():
        return str(cwd_candidate)

    for parent in Path(__file__).resolve().parents:
        candidate = parent / ".env"
        if candidate.is_file():
            return str(candidate)

    return None


_DEFAULT_ENV_FILE = _resolve_env_file()


def ensure_env_loaded() -> None:
    """Load environment variables from disk exactly once."""
    global _ENV_LOADED

    with _ENV_LOCK:
        if _ENV_LOADED:
            return

        env_path = _DEFAULT_ENV_FILE or _resolve_env_file()
        if env_path:
            load_dotenv(env_path, override=False)

        _ENV_LOADED = True


ensure_env_loaded()


def _validate_encoding_name(value: str) -> str:
    normalized = value.strip().lower()
    if normalized not in SUPPORTED_ENCODINGS:
        raise ValueError(
            f"Unsupported token count encoding: {value!r}. "
            f"Expected one of: {', '.join(sorted(SUPPORTED_ENCODINGS))}"
        )
    return normalized


class TokenCountConfig(BaseSettings):
    """Configuration block for token counting."""

    model_config = SettingsConfigDict(extra="ignore")

    encoding: str = "o200k_base"
    parallel_threshold: int = Field(default=1_000_000, ge=1)
    chunk_count: int = Field(default=1000, ge=1, le=10_000)

    @field_validator("encoding")
    @classmethod
    def _validate_encoding(cls, value: str) -> str:
        return _validate_encoding_name(value)


class CodecrawlConfig(BaseSettings):
    """Main configuration class for Codecrawl.

    Loads API credentials, polling behaviour, and metrics tuning from environment variables.
    Uses pydantic-settings for validation and type safety.
    """

    model_config = SettingsConfigDict(
        env_file=_DEFAULT_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========== Codecrawl API ==========
    codecrawl_api_url: str = CLOUD_API_URL
    codecrawl_api_key: SecretStr | None = None
    codecrawl_request_timeout: float = Field(default=60.0, gt=0)

    # ========== Job Polling ==========
    job_poll_interval: float = Field(default=2.0, gt=0)
    job_poll_deadline: float | None = Field(default=None, gt=0)  # None polls until terminal

    # ========== Token Counting ==========
    token_count_encoding: str = "o200k_base"
    metrics_parallel_threshold: int = Field(default=1_000_000, ge=1)
    metrics_chunk_count: int = Field(default=1000, ge=1, le=10_000)

    # ========== Output ==========
    output_file_path: str = "codecrawl-output.xml"
    top_files_len: int = Field(default=5, ge=0)

    # ========== Observability ==========
    log_level: str = "INFO"

    @field_validator("token_count_encoding")
    @classmethod
    def _validate_token_count_encoding(cls, value: str) -> str:
        return _validate_encoding_name(value)

    @field_validator("codecrawl_api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"codecrawl_api_url must be an http(s) URL, got {value!r}")
        return value.rstrip("/")

    @property
    def token_count(self) -> TokenCountConfig:
        """Return validated token counting configuration block."""

        return TokenCountConfig(
            encoding=self.token_count_encoding,
            parallel_threshold=self.metrics_parallel_threshold,
            chunk_count=self.metrics_chunk_count,
        )

    @property
    def api_key_value(self) -> str | None:
        """Get the plain API key, if configured."""
        if self.codecrawl_api_key is None:
            return None
        return self.codecrawl_api_key.get_secret_value()


@lru_cache(maxsize=1)
def get_config() -> CodecrawlConfig:
    """Return cached Settings instance (thread-safe, process-local).

    Uses lru_cache to ensure a single instance is created and reused.

    Returns:
        CodecrawlConfig: The configuration instance loaded from environment variables.
    """
    return CodecrawlConfig()


# Export convenience accessors
__all__ = [
    "CLOUD_API_URL",
    "SUPPORTED_ENCODINGS",
    "CodecrawlConfig",
    "TokenCountConfig",
    "ensure_env_loaded",
    "get_config",
]
