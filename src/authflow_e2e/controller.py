"""Execution controller: test lifecycle, retries, artifacts and reporting.

The test runner (see :mod:`authflow_e2e.pytest_plugin`) drives one controller
per process. Each attempt of a test gets its own browser Session, which is
always quit before the record is finalized.
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Type

import anyio

from authflow_e2e import screenshots
from authflow_e2e.config import ConfigStore, get_settings
from authflow_e2e.exceptions import SkipTest
from authflow_e2e.records import RecordState, RetryPolicy, TestRecord
from authflow_e2e.reporting import ReportSink
from authflow_e2e.session import Session, SessionFactory, clear_session, peek_session, quit_session

logger = logging.getLogger(__name__)

TestBody = Callable[[Session], Awaitable[Any]]


class ExecutionController:
    """Listener for suite and test lifecycle events."""

    def __init__(
        self,
        settings: Optional[ConfigStore] = None,
        sink: Optional[ReportSink] = None,
        factory: Optional[SessionFactory] = None,
        retry_policy: Optional[RetryPolicy] = None,
        skip_exceptions: Sequence[Type[BaseException]] = (),
    ) -> None:
        self.settings = settings or get_settings()
        self.sink = sink or ReportSink(self.settings)
        self.factory = factory or SessionFactory(self.settings)
        self.retry_policy = retry_policy or RetryPolicy(self.settings.retry_count)
        self.skip_exceptions: Tuple[Type[BaseException], ...] = (SkipTest, *skip_exceptions)
        self.records: List[TestRecord] = []
        self._pending: Dict[str, TestRecord] = {}
        self.suite_started = False

    # ---- suite -----------------------------------------------------------------
    def on_suite_start(self) -> None:
        if self.suite_started:
            return
        self.suite_started = True
        self.sink.open()
        logger.info(f"Test suite started against {self.settings.get('base.url', '<unset>')}")

    def on_suite_end(self) -> None:
        if not self.suite_started:
            return
        self.suite_started = False
        self.sink.close()
        summary = self.sink.summary()
        logger.info(
            f"Test suite finished: {summary['total']} tests, {summary['passed']} passed, "
            f"{summary['failed'] + summary['broken']} failed, {summary['skipped']} skipped"
        )

    # ---- test ------------------------------------------------------------------
    def allocate(
        self,
        name: str,
        group: str = "",
        description: str = "",
        author: str = "",
        categories: Sequence[str] = (),
    ) -> TestRecord:
        """Return the record awaiting a retry for ``name``, or a new one."""
        key = f"{group}::{name}"
        record = self._pending.pop(key, None)
        if record is not None:
            return record
        record = TestRecord(
            name=name,
            group=group,
            description=description,
            author=author or self.settings.report_author,
            categories=list(categories) or ([group] if group else []),
        )
        self.records.append(record)
        return record

    async def on_test_start(self, record: TestRecord) -> Session:
        record.start()
        logger.info(f"Starting test: {record.name} (attempt {record.attempts})")
        return await self.factory.create()

    async def on_test_pass(self, record: TestRecord, session: Optional[Session] = None) -> None:
        record.mark_pass()
        if session is not None:
            artifact = await screenshots.capture_pass(session, record.name, self.settings)
            if artifact is not None:
                record.artifacts.append(artifact)
        logger.info(f"Test passed: {record.name}")

    async def on_test_fail(self, record: TestRecord, error: BaseException, session: Optional[Session] = None) -> None:
        record.mark_fail(error)
        logger.error(f"Test failed: {record.name}: {record.error_message}", exc_info=error)
        if session is not None:
            artifact = await screenshots.capture_failure(session, record.name, self.settings)
            if artifact is not None:
                record.artifacts.append(artifact)
        if self.retry_policy.should_retry(record, error):
            record.retry_pending = True
            self._pending[f"{record.group}::{record.name}"] = record

    def on_test_skip(self, record: TestRecord, reason: str) -> None:
        record.mark_skip(reason)
        logger.info(f"Test skipped: {record.name}: {reason}")

    async def on_test_finish(self, record: TestRecord, session: Optional[Session] = None) -> None:
        """Quit the Session, clear the worker slot, then finalize unless a retry is due."""
        await self._release(record, session)
        if record.retry_pending:
            return
        record.finalize()
        self.sink.add(record)

    async def _release(self, record: TestRecord, session: Optional[Session]) -> None:
        try:
            await quit_session(session or peek_session())
        except Exception as exc:
            logger.error(f"Failed to quit browser session for {record.name}: {exc}")
        finally:
            clear_session()

    # ---- driver ----------------------------------------------------------------
    async def run(
        self,
        name: str,
        body: TestBody,
        group: str = "",
        description: str = "",
        author: str = "",
        categories: Sequence[str] = (),
    ) -> TestRecord:
        """Run ``body`` with a fresh Session per attempt until it passes or retries run out.

        The error of the final attempt is re-raised after the record is finalized.
        """
        record = self.allocate(name, group, description, author, categories)
        while True:
            session: Optional[Session] = None
            error: Optional[BaseException] = None
            try:
                session = await self.on_test_start(record)
                await body(session)
            except self.skip_exceptions as exc:
                error = exc
                self.on_test_skip(record, str(exc) or type(exc).__name__)
            except Exception as exc:
                error = exc
                await self.on_test_fail(record, exc, session)
            except BaseException:
                # interrupted: release the browser, leave the record unfinished
                with anyio.CancelScope(shield=True):
                    await self._release(record, session)
                raise
            else:
                await self.on_test_pass(record, session)
            await self.on_test_finish(record, session)
            if record.state is RecordState.FINALIZED:
                if error is not None:
                    raise error
                return record
