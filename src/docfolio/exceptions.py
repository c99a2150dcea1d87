"""Custom exceptions for docfolio."""


class DocfolioError(Exception):
    """Base exception for docfolio.

    Keyword arguments are kept as ``context`` so callers can report which
    operation and which path failed.
    """

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class ConfigError(DocfolioError):
    """Raised when configuration is missing or invalid."""


class NotFoundError(DocfolioError):
    """Raised when a file or document folder does not exist."""


class ValidationError(DocfolioError):
    """Raised for bad arguments or a path that is not a document folder."""


class ContentProcessingError(DocfolioError):
    """Raised when no usable content could be extracted."""


class StoreError(DocfolioError):
    """Raised when a filesystem operation of the store fails."""


class LLMError(DocfolioError):
    """Raised when the optional enhancement LLM call fails."""


class LLMTimeoutError(LLMError):
    """Raised when the LLM call times out. Retryable."""


class LLMNetworkError(LLMError):
    """Raised on connection failures and rate limiting. Retryable."""
