"""Run configuration.

Values only: flag parsing lives in the CLI, which builds one GeneratorConfig
at startup. Every field can also come from an ``APITEST_*`` environment
variable.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class GeneratorConfig(BaseSettings):
    """Immutable settings consumed by the orchestration core."""

    model_config = SettingsConfigDict(env_prefix="APITEST_", frozen=True)

    input_path: Path | None = None
    output_path: Path | None = None
    model: str = DEFAULT_MODEL

    max_retries: int = Field(default=3, ge=0)
    initial_backoff_ms: int = Field(default=1000, gt=0)
    thread_pool_size: int = Field(default=4, ge=1)
    timeout_ms: int = Field(default=60_000, gt=0)
    use_fallback_on_error: bool = True

    max_tokens: int = Field(default=4000, gt=0)
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    shutdown_grace_seconds: float = Field(default=30.0, ge=0.0)
