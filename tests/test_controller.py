"""Execution controller: lifecycle, retries, session release and reporting order."""
import pytest

from authflow_e2e.controller import ExecutionController
from authflow_e2e.exceptions import MissingConfig, SkipTest, UnsupportedBrowser
from authflow_e2e.records import Outcome, RecordState, RetryPolicy, TestRecord
from authflow_e2e.reporting import ReportSink
from authflow_e2e.session import clear_session, current_session, peek_session
from fakes import FakeFactory, make_settings

pytestmark = pytest.mark.asyncio


class Interrupted(BaseException):
    pass


class RecordingSink(ReportSink):
    """Notes the worker slot and session state at the moment a record is reported."""

    def __init__(self, settings):
        super().__init__(settings)
        self.slot_at_add = []

    def add(self, record):
        self.slot_at_add.append(peek_session())
        super().add(record)


@pytest.fixture(autouse=True)
def empty_slot():
    clear_session()
    yield
    clear_session()


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def factory(settings):
    return FakeFactory(settings)


@pytest.fixture
def controller(settings, factory):
    controller = ExecutionController(settings, RecordingSink(settings), factory)
    controller.on_suite_start()
    yield controller
    controller.on_suite_end()


async def test_passing_test_is_finalized_and_reported(controller, factory):
    async def body(session):
        assert current_session() is session

    record = await controller.run("test_login_ok", body, group="LoginTests", description="logs in")

    assert record.state is RecordState.FINALIZED
    assert record.outcome is Outcome.PASSED
    assert record.attempts == 1
    assert record.categories == ["LoginTests"]
    assert controller.sink.records == [record]
    assert factory.sessions[0].closed
    assert peek_session() is None


async def test_session_is_quit_before_record_is_reported(controller, factory):
    async def body(session):
        pass

    await controller.run("test_any", body)

    assert controller.sink.slot_at_add == [None]
    assert factory.sessions[0].playwright.stopped


async def test_failing_test_retries_then_reraises(controller, factory):
    attempts = []

    async def body(session):
        attempts.append(session)
        assert False, "dashboard not shown"

    with pytest.raises(AssertionError, match="dashboard not shown"):
        await controller.run("test_flaky_ui", body, group="LoginTests")

    record = controller.records[0]
    assert len(attempts) == 3
    assert record.attempts == 3 and record.retries == 2
    assert record.outcome is Outcome.FAILED
    assert record.state is RecordState.FINALIZED
    assert controller.sink.records == [record]
    assert all(session.closed for session in factory.sessions)
    assert len({id(session) for session in attempts}) == 3
    assert len(record.artifacts) == 3


async def test_retry_that_passes_clears_the_error(controller):
    calls = []

    async def body(session):
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("stale element")

    record = await controller.run("test_recovers", body)

    assert record.outcome is Outcome.PASSED
    assert record.attempts == 2
    assert record.error_message == ""
    assert [a.outcome for a in record.history] == [Outcome.BROKEN, Outcome.PASSED]
    assert len(controller.sink.records) == 1


async def test_retry_budget_is_per_test(controller):
    async def body(session):
        raise RuntimeError("boom")

    for name in ("test_a", "test_b"):
        with pytest.raises(RuntimeError):
            await controller.run(name, body)

    assert [r.attempts for r in controller.sink.records] == [3, 3]


async def test_fatal_error_is_not_retried(controller):
    async def body(session):
        raise MissingConfig("base.url")

    with pytest.raises(MissingConfig):
        await controller.run("test_needs_config", body)

    record = controller.records[0]
    assert record.attempts == 1
    assert record.outcome is Outcome.BROKEN


async def test_session_creation_failure_is_recorded(controller, factory):
    factory.error = UnsupportedBrowser("opera")

    async def body(session):
        raise AssertionError("never reached")

    with pytest.raises(UnsupportedBrowser):
        await controller.run("test_cannot_launch", body)

    record = controller.records[0]
    assert record.attempts == 1
    assert record.error_type == "UnsupportedBrowser"
    assert controller.sink.records == [record]


async def test_skip_is_recorded_and_propagated(controller):
    async def body(session):
        raise SkipTest("mailbox not configured")

    with pytest.raises(SkipTest):
        await controller.run("test_external_otp", body)

    record = controller.records[0]
    assert record.outcome is Outcome.SKIPPED
    assert record.skip_reason == "mailbox not configured"
    assert record.attempts == 1


async def test_screenshot_failure_does_not_mask_test_error(settings):
    factory = FakeFactory(settings, prepare=lambda page: setattr(page, "screenshot_error", RuntimeError("gpu lost")))
    controller = ExecutionController(settings, ReportSink(settings), factory, retry_policy=RetryPolicy(0))
    controller.on_suite_start()

    async def body(session):
        raise ValueError("real failure")

    with pytest.raises(ValueError, match="real failure"):
        await controller.run("test_broken_page", body)

    record = controller.records[0]
    assert record.error_message == "real failure"
    assert record.artifacts == []
    controller.on_suite_end()


async def test_interrupt_releases_session_without_finalizing(controller, factory):
    async def body(session):
        raise Interrupted()

    with pytest.raises(Interrupted):
        await controller.run("test_interrupted", body)

    assert factory.sessions[0].closed
    assert peek_session() is None
    assert controller.records[0].state is RecordState.RUNNING
    assert controller.sink.records == []


async def test_suite_end_writes_report(controller):
    async def body(session):
        pass

    await controller.run("test_one", body)
    controller.on_suite_end()

    assert controller.sink.path.exists()
    assert controller.sink.summary()["passed"] == 1


async def test_record_rejects_illegal_transitions():
    record = TestRecord("test_x")
    with pytest.raises(RuntimeError):
        record.mark_pass()
    record.start()
    record.mark_pass()
    with pytest.raises(RuntimeError):
        record.start()
    record.finalize()
    with pytest.raises(RuntimeError):
        record.finalize()


async def test_retry_policy_counts_on_the_record():
    policy = RetryPolicy(1)
    record = TestRecord("test_x")
    assert policy.should_retry(record, RuntimeError()) is True
    assert policy.should_retry(record, RuntimeError()) is False
    assert policy.should_retry(TestRecord("test_y"), UnsupportedBrowser("opera")) is False


async def test_no_failure_screenshot_when_disabled(tmp_path):
    settings = make_settings(tmp_path, **{"screenshot.on.failure": "false"})
    controller = ExecutionController(settings, ReportSink(settings), FakeFactory(settings), RetryPolicy(0))

    async def body(session):
        raise AssertionError("wrong page")

    with pytest.raises(AssertionError):
        await controller.run("test_no_shot", body)

    assert controller.records[0].artifacts == []
    assert not (tmp_path / "screenshots").exists()


async def test_skipped_test_still_quits_its_session(controller, factory):
    async def body(session):
        raise SkipTest("feature flag off")

    with pytest.raises(SkipTest):
        await controller.run("test_flagged", body)

    assert factory.sessions[0].closed
    assert controller.sink.slot_at_add == [None]
