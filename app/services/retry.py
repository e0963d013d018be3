import logging
import time as time_module
from collections.abc import Callable
from typing import Any, TypeVar

from selenium.common.exceptions import WebDriverException

from app.config import settings
from app.errors import (
    AuthenticationFailedError,
    ElementNotFoundError,
    InputValidationError,
    NavigationFailedError,
    TimeoutExceededError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    ElementNotFoundError,
    AuthenticationFailedError,
    NavigationFailedError,
    TimeoutExceededError,
    WebDriverException,
)


class RetryPolicy:
    """
    Bounded retry for a whole operation.

    A fixed delay is used between attempts unless backoff_multiplier is above 1,
    in which case the delay grows exponentially. InputValidationError is never
    retried, even if it is listed in retry_on.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        delay_seconds: float = 2.0,
        backoff_multiplier: float = 1.0,
        retry_on: tuple[type[Exception], ...] = RETRYABLE_EXCEPTIONS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        self.backoff_multiplier = backoff_multiplier
        self.retry_on = retry_on

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            delay_seconds=settings.retry_delay_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay after the given (zero-based) failed attempt."""
        return self.delay_seconds * (self.backoff_multiplier**attempt)

    def is_retryable(self, error: Exception) -> bool:
        if isinstance(error, InputValidationError):
            return False
        return isinstance(error, self.retry_on)

    def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Call func until it succeeds, raises a non-retryable error, or attempts run out.

        The exception that ends the run is re-raised with a `retry_attempts`
        attribute holding the number of calls made.
        """
        name = getattr(func, "__name__", repr(func))
        last_exception: Exception | None = None
        for attempt in range(self.max_attempts):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                e.retry_attempts = attempt + 1  # type: ignore[attr-defined]
                if not self.is_retryable(e):
                    raise
                last_exception = e
                if attempt < self.max_attempts - 1:
                    delay = self.delay_for(attempt)
                    logger.warning(
                        f"Attempt {attempt + 1}/{self.max_attempts} failed for {name}: {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )
                    time_module.sleep(delay)
                else:
                    logger.error(f"All {self.max_attempts} attempts failed for {name}: {e}")
        raise last_exception  # type: ignore[misc]
