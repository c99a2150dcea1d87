"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from docfolio.config import Config, load_config
from docfolio.exceptions import ConfigError


class TestLoadConfig:
    def test_defaults(self, vault: Path) -> None:
        config = load_config(vault_path=str(vault))
        assert config.vault_path == vault
        assert config.similarity_threshold == 0.8
        assert config.min_content_length == 100
        assert config.search_limit == 10
        assert config.strategy == "simple"
        assert not config.enhance
        assert config.llm_provider == "claude"
        assert config.default_model == "claude-sonnet-4-20250514"

    def test_vault_from_environment(self, vault: Path, monkeypatch) -> None:
        monkeypatch.setenv("DOCFOLIO_VAULT_PATH", str(vault))
        assert load_config().vault_path == vault

    def test_missing_vault(self) -> None:
        with pytest.raises(ConfigError, match="DOCFOLIO_VAULT_PATH"):
            load_config()

    def test_vault_not_a_directory(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            load_config(vault_path=str(tmp_path / "missing"))

    def test_numbers_from_environment(self, vault: Path, monkeypatch) -> None:
        monkeypatch.setenv("DOCFOLIO_SIMILARITY_THRESHOLD", "0.9")
        monkeypatch.setenv("DOCFOLIO_MIN_CONTENT_LENGTH", "50")
        monkeypatch.setenv("DOCFOLIO_SEARCH_LIMIT", "25")
        config = load_config(vault_path=str(vault))
        assert config.similarity_threshold == 0.9
        assert config.min_content_length == 50
        assert config.search_limit == 25

    def test_overrides_beat_environment(self, vault: Path, monkeypatch) -> None:
        monkeypatch.setenv("DOCFOLIO_SIMILARITY_THRESHOLD", "0.9")
        monkeypatch.setenv("LLM_PROVIDER", "claude")
        config = load_config(vault_path=str(vault), similarity_threshold=0.5, provider="openai")
        assert config.similarity_threshold == 0.5
        assert config.llm_provider == "openai"
        assert config.default_model == "gpt-4o"

    @pytest.mark.parametrize(
        "name,value",
        [
            ("DOCFOLIO_SIMILARITY_THRESHOLD", "high"),
            ("DOCFOLIO_MIN_CONTENT_LENGTH", "1.5"),
            ("DOCFOLIO_SEARCH_LIMIT", "ten"),
        ],
    )
    def test_malformed_numbers(self, vault: Path, monkeypatch, name: str, value: str) -> None:
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigError, match=name):
            load_config(vault_path=str(vault))

    @pytest.mark.parametrize("value,expected", [("1", True), ("yes", True), ("off", False), ("", False)])
    def test_enhance_from_environment(self, vault: Path, monkeypatch, value: str, expected: bool) -> None:
        monkeypatch.setenv("DOCFOLIO_ENHANCE", value)
        monkeypatch.setenv("ANTHROPIC_API_KEY", "key")
        assert load_config(vault_path=str(vault)).enhance is expected

    def test_api_key_only_needed_to_enhance(self, vault: Path) -> None:
        assert not load_config(vault_path=str(vault)).anthropic_api_key
        with pytest.raises(ConfigError, match="ANTHROPIC_API_KEY"):
            load_config(vault_path=str(vault), enhance=True)
        with pytest.raises(ConfigError, match="OPENAI_API_KEY"):
            load_config(vault_path=str(vault), enhance=True, provider="openai")


class TestValidate:
    @pytest.mark.parametrize(
        "field,value",
        [
            ("similarity_threshold", 1.5),
            ("min_content_length", -1),
            ("search_limit", 0),
            ("strategy", "fancy"),
            ("llm_provider", "other"),
            ("enhance_max_attempts", 0),
            ("enhance_timeout", 0),
        ],
    )
    def test_rejects_bad_values(self, vault: Path, field: str, value) -> None:
        config = Config(vault_path=vault, **{field: value})
        with pytest.raises(ConfigError):
            config.validate()

    def test_explicit_model(self, vault: Path) -> None:
        assert Config(vault_path=vault, model="claude-opus-4-1").default_model == "claude-opus-4-1"
