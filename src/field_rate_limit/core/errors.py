from __future__ import annotations


class ConfigurationError(RuntimeError):
    """
    Raised at setup time for a limiter that can never work:
    missing identify_context, unparsable window, unknown store backend.
    """


class StoreError(RuntimeError):
    def __init__(self, operation: str, original: BaseException) -> None:
        super().__init__(f"Rate limit store {operation} failed: {type(original).__name__}: {original}")
        self.operation = operation
        self.original = original


class RateLimitError(Exception):
    is_rate_limit_error = True

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def is_rate_limit_error(exc: BaseException) -> bool:
    return getattr(exc, "is_rate_limit_error", False) is True
