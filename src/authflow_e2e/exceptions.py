"""Error taxonomy for the test execution harness.

Setup errors (``MissingConfig``, ``UnsupportedBrowser``) are fatal and are
never retried. Everything raised while a test body runs is eligible for a
retry by the execution controller.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


class HarnessError(Exception):
    """Base class for all harness errors."""


class MissingConfig(HarnessError, KeyError):
    """A required configuration key has no value in any layer."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"Required configuration key '{self.key}' is not set"


class UnsupportedBrowser(HarnessError, ValueError):
    """The configured browser name is not one of chrome, firefox, edge."""

    def __init__(self, browser: str) -> None:
        super().__init__(browser)
        self.browser = browser

    def __str__(self) -> str:
        return f"Browser not supported: {self.browser!r} (expected chrome, firefox or edge)"


@dataclass(eq=False)
class ElementTimeout(HarnessError, TimeoutError):
    """A wait condition was not met within the explicit-wait budget."""

    name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    message: str = ""

    def __str__(self) -> str:
        return f"{self.name} timed out ({self.message}) with payload={self.payload}"


@dataclass(eq=False)
class InteractionError(HarnessError):
    """A click/type/select failed even though the wait condition was met."""

    name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    message: str = ""

    def __str__(self) -> str:
        return f"{self.name} failed ({self.message}) with payload={self.payload}"


@dataclass(eq=False)
class ElementNotFound(InteractionError):
    """Raised instead of log-and-return when strict mode is enabled."""


class OtpUnavailable(HarnessError):
    """The OTP provider could not produce a code within its window."""


class NoActiveSession(HarnessError):
    """The current worker has no Session in its worker-local slot."""


class SessionAlreadyActive(HarnessError):
    """A second Session was requested on a worker that already holds one."""


class SkipTest(HarnessError):
    """Raised by a test body to mark the test as skipped."""


FATAL_ERRORS = (MissingConfig, UnsupportedBrowser)
