"""
Error taxonomy for replybot.

Retryable failures (RateLimited, TransientNetworkError) are absorbed by the
request scheduler's retry wrapper. Everything else surfaces to the caller as
a PermanentError.
"""


class ReplyBotError(Exception):
    """Base class for all replybot errors."""


class RateLimited(ReplyBotError):
    """The platform answered with "too many requests"."""

    def __init__(self, message: str = "Rate limited", retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class TransientNetworkError(ReplyBotError):
    """A network or server failure that is worth retrying."""

    def __init__(self, message: str = "Transient network error", status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PermanentError(ReplyBotError):
    """A failure that must not be retried."""

    def __init__(self, message: str = "Permanent error", status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RetryExhausted(PermanentError):
    """Retries ran out; ``last_error`` holds the final underlying failure."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"Exceeded max retries after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class SchedulerClosed(ReplyBotError):
    """The request scheduler was closed before the request could run."""


class ConfigError(ReplyBotError):
    """Required configuration is missing or invalid."""


class StartupError(ReplyBotError):
    """The bot could not complete its startup sequence."""
