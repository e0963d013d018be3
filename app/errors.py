"""
Failure taxonomy for a discovery run.

Components raise the typed errors below; only the discovery service decides
whether a failure is retried, reported as a final failure, or treated as an
empty result.
"""

from collections.abc import Sequence
from typing import Any


class DiscoveryError(Exception):
    """Base class for all discovery failures."""


class InputValidationError(DiscoveryError):
    """Credentials or preferences have the wrong shape. Never retried."""


class ElementNotFoundError(DiscoveryError):
    def __init__(self, description: str, strategies: Sequence[Any] = ()) -> None:
        self.description = description
        self.strategies = tuple(strategies)
        tried = ", ".join(str(s) for s in self.strategies) or "no strategies"
        super().__init__(f"Element not found: {description} (tried {tried})")


class AuthenticationFailedError(DiscoveryError):
    def __init__(self, message: str, masked_identifier: str) -> None:
        self.masked_identifier = masked_identifier
        super().__init__(f"{message} [licence {masked_identifier}]")


class NavigationFailedError(DiscoveryError):
    pass


class TimeoutExceededError(DiscoveryError):
    pass


class DiscoveryFailedError(DiscoveryError):
    """Final failure signal once the retry policy gives up."""

    def __init__(self, message: str, attempts: int = 1) -> None:
        self.attempts = attempts
        super().__init__(message)
