"""Claude/Anthropic LLM provider."""

from typing import Optional

import anthropic

from ..exceptions import LLMError, LLMNetworkError, LLMTimeoutError
from .base import LLMProvider

# Older model families cap output lower than the current default
_SMALL_OUTPUT_PREFIXES = ("claude-3-5-", "claude-3-")
_MAX_OUTPUT = 16_384
_SMALL_MAX_OUTPUT = 8_192


class AnthropicProvider(LLMProvider):
    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        timeout: float = 60.0,
    ):
        # Retries are left to the caller, which knows which failures matter
        self._client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self._model = model
        self._max_output = (
            _SMALL_MAX_OUTPUT if model.startswith(_SMALL_OUTPUT_PREFIXES) else _MAX_OUTPUT
        )

    @property
    def max_input_tokens(self) -> int:
        return 180_000

    @property
    def default_max_output_tokens(self) -> int:
        return self._max_output

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        try:
            response = self._client.messages.create(
                model=self._model,
                max_tokens=min(max_output_tokens or self._max_output, self._max_output),
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except anthropic.APITimeoutError as e:
            raise LLMTimeoutError(f"Anthropic request timed out: {e}", model=self._model) from e
        except (anthropic.APIConnectionError, anthropic.RateLimitError, anthropic.InternalServerError) as e:
            raise LLMNetworkError(f"Anthropic request failed: {e}", model=self._model) from e
        except anthropic.APIError as e:
            raise LLMError(f"Anthropic API error: {e}", model=self._model) from e
        return "".join(block.text for block in response.content if block.type == "text")
