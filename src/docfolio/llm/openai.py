"""OpenAI LLM provider."""

from typing import Optional

import openai

from ..exceptions import LLMError, LLMNetworkError, LLMTimeoutError
from .base import LLMProvider

_MAX_OUTPUT = 16_384

# Chat models that still take max_tokens; reasoning and newer models want
# max_completion_tokens instead.
_MAX_TOKENS_PREFIXES = ("gpt-3.5", "gpt-4o", "gpt-4-")


class OpenAIProvider(LLMProvider):
    def __init__(self, api_key: str, model: str = "gpt-4o", timeout: float = 60.0):
        self._client = openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self._model = model

    @property
    def token_param(self) -> str:
        if self._model.startswith(_MAX_TOKENS_PREFIXES):
            return "max_tokens"
        return "max_completion_tokens"

    @property
    def max_input_tokens(self) -> int:
        return 14_000 if self._model.startswith("gpt-3.5") else 120_000

    @property
    def default_max_output_tokens(self) -> int:
        return _MAX_OUTPUT

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        tokens = min(max_output_tokens or _MAX_OUTPUT, _MAX_OUTPUT)
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                **{self.token_param: tokens},
            )
        except openai.APITimeoutError as e:
            raise LLMTimeoutError(f"OpenAI request timed out: {e}", model=self._model) from e
        except (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError) as e:
            raise LLMNetworkError(f"OpenAI request failed: {e}", model=self._model) from e
        except openai.APIError as e:
            raise LLMError(f"OpenAI API error: {e}", model=self._model) from e
        return response.choices[0].message.content or ""
