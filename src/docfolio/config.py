"""Configuration loading and validation."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigError
from .models import STRATEGY_NAMES

PROVIDERS = ("claude", "openai")
TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class Config:
    """Application configuration."""

    vault_path: Optional[Path] = None
    similarity_threshold: float = 0.8
    min_content_length: int = 100
    search_limit: int = 10
    strategy: str = "simple"
    dry_run: bool = False
    enhance: bool = False
    llm_provider: str = "claude"
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    model: str = ""
    enhance_max_attempts: int = 3
    enhance_timeout: float = 60.0
    verbose: bool = False

    @property
    def default_model(self) -> str:
        if self.model:
            return self.model
        if self.llm_provider == "claude":
            return "claude-sonnet-4-20250514"
        return "gpt-4o"

    def validate(self) -> None:
        """Validate required configuration."""
        if self.vault_path is None:
            raise ConfigError(
                "DOCFOLIO_VAULT_PATH is required. Set it in .env, the environment or --vault-path."
            )
        if not self.vault_path.is_dir():
            raise ConfigError("Vault path is not an existing directory.", path=self.vault_path)
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ConfigError("similarity_threshold must be between 0 and 1.")
        if self.min_content_length < 0:
            raise ConfigError("min_content_length cannot be negative.")
        if self.search_limit < 1:
            raise ConfigError("search_limit must be at least 1.")
        if self.strategy not in STRATEGY_NAMES:
            raise ConfigError(
                f"Unknown strategy: {self.strategy}. Use one of {', '.join(STRATEGY_NAMES)}."
            )
        if self.llm_provider not in PROVIDERS:
            raise ConfigError(
                f"Unknown LLM provider: {self.llm_provider}. Use 'claude' or 'openai'."
            )
        if self.enhance_max_attempts < 1:
            raise ConfigError("enhance_max_attempts must be at least 1.")
        if self.enhance_timeout <= 0:
            raise ConfigError("enhance_timeout must be positive.")
        if not self.enhance:
            return
        if self.llm_provider == "claude" and not self.anthropic_api_key:
            raise ConfigError(
                "ANTHROPIC_API_KEY is required to enhance with the Claude provider."
            )
        if self.llm_provider == "openai" and not self.openai_api_key:
            raise ConfigError(
                "OPENAI_API_KEY is required to enhance with the OpenAI provider."
            )


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {value!r}.") from e


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}.") from e


def load_config(
    vault_path: Optional[str] = None,
    similarity_threshold: Optional[float] = None,
    min_content_length: Optional[int] = None,
    search_limit: Optional[int] = None,
    strategy: Optional[str] = None,
    dry_run: bool = False,
    enhance: Optional[bool] = None,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    verbose: bool = False,
) -> Config:
    """Load config from .env and the environment, then apply CLI overrides."""
    load_dotenv()

    vault = vault_path or os.getenv("DOCFOLIO_VAULT_PATH", "")
    if enhance is None:
        enhance = os.getenv("DOCFOLIO_ENHANCE", "").strip().lower() in TRUE_VALUES

    config = Config(
        vault_path=Path(vault).expanduser() if vault else None,
        similarity_threshold=(
            similarity_threshold
            if similarity_threshold is not None
            else _env_float("DOCFOLIO_SIMILARITY_THRESHOLD", 0.8)
        ),
        min_content_length=(
            min_content_length
            if min_content_length is not None
            else _env_int("DOCFOLIO_MIN_CONTENT_LENGTH", 100)
        ),
        search_limit=(
            search_limit if search_limit is not None else _env_int("DOCFOLIO_SEARCH_LIMIT", 10)
        ),
        strategy=strategy or "simple",
        dry_run=dry_run,
        enhance=enhance,
        llm_provider=provider or os.getenv("LLM_PROVIDER", "claude"),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        model=model or "",
        verbose=verbose,
    )

    config.validate()
    return config
