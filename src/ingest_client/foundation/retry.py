"""Retry utilities with fixed backoff using tenacity.

This module provides reusable retry utilities for consistent retry behavior
with structured logging.

## Components

### ErrorClassifier (Protocol)
Protocol for classifying errors as retriable vs non-retriable. Clients
implement this to define their specific error classification logic.

### create_retry_logger
Factory function to create retry logging callbacks with custom error
detail extraction.

### RetryWithBackoff
Class-based bounded retry with a fixed wait between attempts, an injectable
sleep function, and classifier-driven exception filtering.

## Usage

```python
from ingest_client.foundation.retry import RetryWithBackoff

class ConnectionClassifier:
    def is_retriable(self, exc: BaseException) -> bool:
        return isinstance(exc, ConnectionError)

    def get_error_details(self, exc: BaseException) -> dict[str, Any]:
        return {}

retry = RetryWithBackoff(classifier=ConnectionClassifier(), max_attempts=2, wait_seconds=1.0)
retry.call(send, endpoint, body)
```
"""

import logging
import time
from collections.abc import Callable
from typing import Any, Protocol, TypeVar, runtime_checkable

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_fixed

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_WAIT_SECONDS = 1.0

# =============================================================================
# Error Classification
# =============================================================================


@runtime_checkable
class ErrorClassifier(Protocol):
    """Protocol for error classification in retry logic.

    Clients implement this protocol to define which exceptions should
    trigger retries and how to extract error details for logging.
    """

    def is_retriable(self, exc: BaseException) -> bool:
        """Determine if an exception should trigger a retry.

        Args:
            exc: The exception to classify.

        Returns:
            True if the error is transient and should be retried,
            False if it's a permanent error that should fail immediately.
        """
        ...

    def get_error_details(self, exc: BaseException) -> dict[str, Any]:
        """Extract structured error details for logging.

        Args:
            exc: The exception to extract details from.

        Returns:
            Dictionary with client-specific error details (e.g., endpoint,
            request_id). Empty dict if no details available.
        """
        ...


# =============================================================================
# Retry Logging
# =============================================================================


def create_retry_logger(
    logger: logging.Logger,
    get_error_details: Callable[[BaseException], dict[str, Any]] | None = None,
    message: str = "Operation failed, retrying",
) -> Callable[[Any], None]:
    """Create a retry logging callback for tenacity.

    This factory creates a callback function suitable for tenacity's
    `before_sleep` parameter. It logs retry attempts with structured
    context including attempt number, wait time, and error details.

    Args:
        logger: Logger instance to use for logging.
        get_error_details: Optional function to extract additional error
            details from exceptions.
        message: Log message template.

    Returns:
        Callback function for tenacity's before_sleep parameter.
    """

    def log_retry(retry_state: Any) -> None:
        if retry_state.outcome is None or not retry_state.outcome.failed:
            return

        exc = retry_state.outcome.exception()
        wait_time = retry_state.next_action.sleep if retry_state.next_action else 0

        extra: dict[str, Any] = {
            "attempt": retry_state.attempt_number,
            "wait_seconds": round(wait_time, 2),
            "error": str(exc),
            "error_type": type(exc).__name__,
        }

        if get_error_details is not None:
            extra.update(get_error_details(exc))

        logger.info(message, extra=extra)

    return log_retry


# =============================================================================
# RetryWithBackoff
# =============================================================================


class RetryWithBackoff:
    """Bounded retry with a fixed wait between attempts.

    Only exceptions the classifier marks as retriable are retried; anything
    else propagates from the first attempt. When the attempts run out, the
    exception raised by the final attempt propagates unchanged.

    Attributes:
        classifier: Decides which exceptions are retried.
        max_attempts: Total number of attempts, including the first (default: 2).
        wait_seconds: Fixed wait between attempts in seconds (default: 1.0).
        sleep: Function used to wait (default: time.sleep).
        logger: Logger instance for structured logging.
        message: Message logged before each wait.
    """

    def __init__(
        self,
        classifier: ErrorClassifier,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        wait_seconds: float = DEFAULT_WAIT_SECONDS,
        sleep: Callable[[float], None] | None = None,
        logger: logging.Logger | None = None,
        message: str = "Retry attempt failed, retrying",
    ) -> None:
        if max_attempts < 1:
            msg = f"max_attempts must be at least 1, got {max_attempts}"
            raise ValueError(msg)
        self.classifier = classifier
        self.max_attempts = max_attempts
        self.wait_seconds = wait_seconds
        self.sleep = sleep or time.sleep
        self.logger = logger or logging.getLogger("ingest_client.retry")
        self.message = message

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call a function with retry logic.

        Args:
            func: Function to call with retry logic.
            *args: Positional arguments to pass to func.
            **kwargs: Keyword arguments to pass to func.

        Returns:
            Result of func(*args, **kwargs).

        Raises:
            Exception: The first non-retriable exception, or the exception
                raised by the last attempt.
        """
        retry = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.wait_seconds),
            retry=retry_if_exception(self.classifier.is_retriable),
            before_sleep=create_retry_logger(self.logger, self.classifier.get_error_details, self.message),
            sleep=self.sleep,
            reraise=True,
        )
        result: T = retry(func, *args, **kwargs)
        return result
