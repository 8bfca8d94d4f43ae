"""Per-test execution records and the retry policy."""
from __future__ import annotations

import logging
import traceback
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set

from authflow_e2e.exceptions import FATAL_ERRORS

logger = logging.getLogger(__name__)


class RecordState(str, Enum):
    NEW = "new"
    RUNNING = "running"
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"
    FINALIZED = "finalized"


class Outcome(str, Enum):
    PASSED = "passed"
    FAILED = "failed"  # assertion failures
    BROKEN = "broken"  # any other error
    SKIPPED = "skipped"


_TRANSITIONS: Dict[RecordState, Set[RecordState]] = {
    RecordState.NEW: {RecordState.RUNNING, RecordState.SKIP},
    RecordState.RUNNING: {RecordState.PASS, RecordState.FAIL, RecordState.SKIP},
    RecordState.PASS: {RecordState.FINALIZED},
    RecordState.FAIL: {RecordState.RUNNING, RecordState.FINALIZED},
    RecordState.SKIP: {RecordState.FINALIZED},
    RecordState.FINALIZED: set(),
}


@dataclass
class Artifact:
    """A captured file (screenshot) attached to a record."""

    path: Optional[Path]
    data: bytes
    description: str
    mime_type: str = "image/png"


@dataclass
class Attempt:
    number: int
    outcome: Optional[Outcome] = None
    error_message: str = ""
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None


@dataclass
class TestRecord:
    """Mutable state of one test across all of its attempts."""

    __test__ = False

    name: str
    group: str = ""
    description: str = ""
    author: str = ""
    categories: List[str] = field(default_factory=list)
    state: RecordState = RecordState.NEW
    outcome: Optional[Outcome] = None
    attempts: int = 0
    retries: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error_message: str = ""
    error_type: str = ""
    traceback: str = ""
    skip_reason: str = ""
    artifacts: List[Artifact] = field(default_factory=list)
    history: List[Attempt] = field(default_factory=list)
    retry_pending: bool = False
    uuid: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def full_name(self) -> str:
        return f"{self.group}.{self.name}" if self.group else self.name

    @property
    def duration(self) -> float:
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def transition(self, state: RecordState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal state transition for '{self.name}': {self.state.value} -> {state.value}")
        self.state = state

    def start(self) -> None:
        self.transition(RecordState.RUNNING)
        self.attempts += 1
        self.retry_pending = False
        if self.started_at is None:
            self.started_at = datetime.now()
        self.history.append(Attempt(number=self.attempts))

    def _close_attempt(self, outcome: Outcome, message: str = "") -> None:
        if self.history:
            attempt = self.history[-1]
            attempt.outcome = outcome
            attempt.error_message = message
            attempt.finished_at = datetime.now()

    def mark_pass(self) -> None:
        self.transition(RecordState.PASS)
        self.outcome = Outcome.PASSED
        self.error_message = self.error_type = self.traceback = ""
        self._close_attempt(Outcome.PASSED)

    def mark_fail(self, error: BaseException) -> None:
        self.transition(RecordState.FAIL)
        self.outcome = Outcome.FAILED if isinstance(error, AssertionError) else Outcome.BROKEN
        self.error_message = str(error) or type(error).__name__
        self.error_type = type(error).__name__
        self.traceback = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        self._close_attempt(self.outcome, self.error_message)

    def mark_skip(self, reason: str) -> None:
        self.transition(RecordState.SKIP)
        self.outcome = Outcome.SKIPPED
        self.skip_reason = reason
        self._close_attempt(Outcome.SKIPPED, reason)

    def finalize(self) -> None:
        self.transition(RecordState.FINALIZED)
        self.retry_pending = False
        self.finished_at = datetime.now()


class RetryPolicy:
    """Decides whether a failed attempt is re-run.

    The counter lives on each record, so sibling tests never share budget and
    a record never exceeds ``1 + max_retries`` attempts.
    """

    def __init__(self, max_retries: int) -> None:
        self.max_retries = max(max_retries, 0)

    def should_retry(self, record: TestRecord, error: BaseException) -> bool:
        if isinstance(error, FATAL_ERRORS):
            logger.info(f"Not retrying '{record.name}': {type(error).__name__} is fatal")
            return False
        if record.retries < self.max_retries:
            record.retries += 1
            logger.info(f"Retrying test '{record.name}' ({record.retries}/{self.max_retries})")
            return True
        return False
