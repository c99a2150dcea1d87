"""Tests for LLM enhancement and provider error translation."""

from __future__ import annotations

from unittest.mock import MagicMock

import anthropic
import httpx
import openai
import pytest

from docfolio.config import Config
from docfolio.enhancer import ContentEnhancer, _retry, build_prompt, clean_output
from docfolio.exceptions import LLMError, LLMNetworkError, LLMTimeoutError
from docfolio.llm import get_llm_provider
from docfolio.llm.anthropic import AnthropicProvider
from docfolio.llm.openai import OpenAIProvider

MERGED = "# Topic - Consolidated Document\n\n## Part 1\n\nSome merged text."
REQUEST = httpx.Request("POST", "https://api.example.com/v1")


@pytest.fixture
def llm() -> MagicMock:
    provider = MagicMock()
    provider.max_input_tokens = 100_000
    provider.default_max_output_tokens = 4_096
    return provider


@pytest.fixture
def sleep() -> MagicMock:
    return MagicMock()


class TestRetry:
    def test_returns_first_success(self, sleep: MagicMock) -> None:
        assert _retry(lambda: "ok", sleep=sleep) == "ok"
        sleep.assert_not_called()

    def test_non_retryable_error_raised_immediately(self, sleep: MagicMock) -> None:
        func = MagicMock(side_effect=LLMError("bad request"))
        with pytest.raises(LLMError):
            _retry(func, sleep=sleep)
        assert func.call_count == 1
        sleep.assert_not_called()


class TestContentEnhancer:
    def test_success(self, llm: MagicMock, sleep: MagicMock) -> None:
        llm.generate.return_value = "# Better\n\nSmoother text."
        text, enhanced = ContentEnhancer(llm, sleep=sleep).enhance(MERGED, "Topic")
        assert enhanced
        assert text == "# Better\n\nSmoother text."
        system_prompt, user_prompt = llm.generate.call_args[0]
        assert "frontmatter" in system_prompt
        assert MERGED in user_prompt
        assert llm.generate.call_args[1]["max_output_tokens"] == 4_096

    def test_retries_transient_failures(self, llm: MagicMock, sleep: MagicMock) -> None:
        """Should back off 2s then 4s before the third attempt succeeds."""
        llm.generate.side_effect = [
            LLMTimeoutError("timed out"),
            LLMNetworkError("connection reset"),
            "# Better",
        ]
        text, enhanced = ContentEnhancer(llm, sleep=sleep).enhance(MERGED, "Topic")
        assert (text, enhanced) == ("# Better", True)
        assert [c.args[0] for c in sleep.call_args_list] == [2.0, 4.0]

    def test_exhausted_retries_keep_content(self, llm: MagicMock, sleep: MagicMock) -> None:
        llm.generate.side_effect = LLMTimeoutError("timed out")
        text, enhanced = ContentEnhancer(llm, max_attempts=3, sleep=sleep).enhance(MERGED, "Topic")
        assert (text, enhanced) == (MERGED, False)
        assert llm.generate.call_count == 3
        assert sleep.call_count == 2

    def test_non_retryable_error_keeps_content(self, llm: MagicMock, sleep: MagicMock) -> None:
        llm.generate.side_effect = LLMError("invalid key")
        text, enhanced = ContentEnhancer(llm, sleep=sleep).enhance(MERGED, "Topic")
        assert (text, enhanced) == (MERGED, False)
        assert llm.generate.call_count == 1
        sleep.assert_not_called()

    def test_empty_or_unchanged_reply(self, llm: MagicMock, sleep: MagicMock) -> None:
        enhancer = ContentEnhancer(llm, sleep=sleep)
        llm.generate.return_value = "   "
        assert enhancer.enhance(MERGED, "Topic") == (MERGED, False)
        llm.generate.return_value = f"```markdown\n{MERGED}\n```"
        assert enhancer.enhance(MERGED, "Topic") == (MERGED, False)

    def test_oversized_input_skipped(self, llm: MagicMock, sleep: MagicMock) -> None:
        llm.max_input_tokens = 10_500
        content = "word " * 4_000
        assert ContentEnhancer(llm, sleep=sleep).enhance(content, "Topic") == (content, False)
        llm.generate.assert_not_called()


class TestPrompt:
    def test_build_prompt_mentions_topic(self) -> None:
        prompt = build_prompt("body", "Kubernetes")
        assert '"Kubernetes"' in prompt
        assert "CONTENT TO ENHANCE:\nbody" in prompt

    @pytest.mark.parametrize(
        "reply,expected",
        [
            ("  # Title\n\ntext  ", "# Title\n\ntext"),
            ("---\ntitle: x\n---\n# Title", "# Title"),
            ("```markdown\n# Title\n```", "# Title"),
            ("```\n# Title\n```", "# Title"),
            ("", ""),
        ],
    )
    def test_clean_output(self, reply: str, expected: str) -> None:
        assert clean_output(reply) == expected


class TestAnthropicProvider:
    @pytest.fixture
    def provider(self) -> AnthropicProvider:
        provider = AnthropicProvider(api_key="test-key", model="claude-3-5-haiku-latest")
        provider._client = MagicMock()
        return provider

    def test_joins_text_blocks(self, provider: AnthropicProvider) -> None:
        provider._client.messages.create.return_value = MagicMock(content=[
            MagicMock(type="text", text="Hello "),
            MagicMock(type="tool_use"),
            MagicMock(type="text", text="world"),
        ])
        assert provider.generate("system", "user") == "Hello world"
        assert provider._client.messages.create.call_args[1]["max_tokens"] == 8_192

    @pytest.mark.parametrize(
        "error,expected",
        [
            (anthropic.APITimeoutError(request=REQUEST), LLMTimeoutError),
            (anthropic.APIConnectionError(message="reset", request=REQUEST), LLMNetworkError),
            (
                anthropic.BadRequestError(
                    "bad", response=httpx.Response(400, request=REQUEST), body=None
                ),
                LLMError,
            ),
        ],
    )
    def test_error_translation(self, provider: AnthropicProvider, error, expected) -> None:
        provider._client.messages.create.side_effect = error
        with pytest.raises(expected) as exc_info:
            provider.generate("system", "user")
        assert type(exc_info.value) is expected


class TestOpenAIProvider:
    @pytest.fixture
    def provider(self) -> OpenAIProvider:
        provider = OpenAIProvider(api_key="test-key", model="gpt-4o")
        provider._client = MagicMock()
        return provider

    def test_legacy_model_uses_max_tokens(self, provider: OpenAIProvider) -> None:
        reply = MagicMock()
        reply.choices[0].message.content = "Hi"
        provider._client.chat.completions.create.return_value = reply
        assert provider.generate("system", "user") == "Hi"
        assert "max_tokens" in provider._client.chat.completions.create.call_args[1]

    @pytest.mark.parametrize(
        "error,expected",
        [
            (openai.APITimeoutError(request=REQUEST), LLMTimeoutError),
            (openai.APIConnectionError(message="reset", request=REQUEST), LLMNetworkError),
            (
                openai.RateLimitError(
                    "slow down", response=httpx.Response(429, request=REQUEST), body=None
                ),
                LLMNetworkError,
            ),
        ],
    )
    def test_error_translation(self, provider: OpenAIProvider, error, expected) -> None:
        provider._client.chat.completions.create.side_effect = error
        with pytest.raises(expected):
            provider.generate("system", "user")


class TestGetLLMProvider:
    def test_picks_provider_from_config(self, tmp_path) -> None:
        claude = Config(vault_path=tmp_path, anthropic_api_key="key", enhance_timeout=5.0)
        openai_config = Config(vault_path=tmp_path, llm_provider="openai", openai_api_key="key")
        assert isinstance(get_llm_provider(claude), AnthropicProvider)
        provider = get_llm_provider(openai_config)
        assert isinstance(provider, OpenAIProvider)
        assert provider.token_param == "max_tokens"
