"""Optional LLM smoothing of consolidated documents.

Best effort only: whatever goes wrong, the caller gets the merged text back.
"""

import logging
import re
import time
from typing import Callable

from .exceptions import LLMError, LLMNetworkError, LLMTimeoutError
from .llm.base import LLMProvider
from .utils import estimate_tokens

LOGGER = logging.getLogger(__name__)

RETRYABLE = (LLMTimeoutError, LLMNetworkError)

SYSTEM_PROMPT = (
    "You are an editor improving a markdown document that was assembled from "
    "several source documents. Make it read as one cohesive document while "
    "keeping every fact. Output ONLY the markdown body, no YAML frontmatter and "
    "no explanatory text."
)


def _retry(func, max_attempts: int = 3, base_delay: float = 2.0, sleep: Callable = time.sleep):
    """Execute func with exponential backoff, retrying only transient LLM errors."""
    last_error = None
    for attempt in range(max_attempts):
        try:
            return func()
        except RETRYABLE as e:
            last_error = e
            if attempt < max_attempts - 1:
                delay = base_delay * (2 ** attempt)
                LOGGER.warning(
                    "Enhancement attempt %d/%d failed (%s), retrying in %.1fs",
                    attempt + 1, max_attempts, e, delay,
                )
                sleep(delay)
    raise last_error


def build_prompt(content: str, topic: str) -> str:
    return (
        f"Please enhance and improve the following consolidated document about \"{topic}\":\n\n"
        f"CONTENT TO ENHANCE:\n{content}\n\n"
        "INSTRUCTIONS:\n"
        "1. Improve the flow and readability of the content\n"
        "2. Fill in any logical gaps between sections\n"
        "3. Add smooth transitions between different parts\n"
        "4. Ensure consistent terminology and style\n"
        "5. Improve headings and structure\n"
        "6. Add a brief introduction if missing\n"
        "7. Ensure the content feels cohesive, not like separate documents merged together\n"
        "8. Maintain all technical accuracy and factual information\n"
        "9. Preserve all code blocks, links, image references and source attributions exactly\n"
        "10. Keep the overall length similar to the original\n\n"
        "Return only the enhanced content in markdown format."
    )


def clean_output(text: str) -> str:
    """Strip whitespace, stray frontmatter and wrapping code fences from a reply."""
    if not text:
        return ""
    text = text.strip()
    text = re.sub(r"^---\s*\n.*?\n---\s*\n?", "", text, count=1, flags=re.DOTALL)
    fenced = re.match(r"^```(?:markdown|md)?\s*\n(.*)\n```$", text, re.DOTALL)
    if fenced:
        text = fenced.group(1)
    return text.strip()


class ContentEnhancer:
    """Ask an LLM to smooth a merged document.

    Args:
        llm: Provider to call.
        max_attempts: Total tries for timeouts and network failures.
        base_delay: First backoff delay in seconds, doubled each retry.
        sleep: Injected for tests.
    """

    def __init__(
        self,
        llm: LLMProvider,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        sleep: Callable = time.sleep,
    ):
        self._llm = llm
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep

    def enhance(self, content: str, topic: str) -> tuple[str, bool]:
        """Return ``(text, enhanced)``; on any failure ``(content, False)``."""
        prompt = build_prompt(content, topic)
        available = self._llm.max_input_tokens - 10_000
        if estimate_tokens(prompt) > available:
            LOGGER.warning(
                "Skipping enhancement of '%s': ~%d tokens exceeds the model limit",
                topic, estimate_tokens(prompt),
            )
            return content, False

        try:
            reply = _retry(
                lambda: self._llm.generate(
                    SYSTEM_PROMPT,
                    prompt,
                    max_output_tokens=self._llm.default_max_output_tokens,
                ),
                max_attempts=self.max_attempts,
                base_delay=self.base_delay,
                sleep=self._sleep,
            )
        except LLMError as e:
            LOGGER.warning("Enhancement of '%s' failed, keeping merged content: %s", topic, e)
            return content, False

        text = clean_output(reply)
        if not text or text == content.strip():
            LOGGER.warning("Enhancement of '%s' returned no improvement", topic)
            return content, False

        LOGGER.info("Enhanced '%s' (%d -> %d chars)", topic, len(content), len(text))
        return text, True
