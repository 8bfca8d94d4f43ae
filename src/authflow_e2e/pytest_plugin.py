"""pytest integration.

Tests marked ``e2e`` are coroutine functions that take a ``browser_session``
fixture. The plugin runs them itself through the execution controller, so each
attempt gets a fresh browser Session, failures are screenshotted and retried,
and every result lands in the suite report::

    pytestmark = pytest.mark.e2e(author="QA Automation Team", category="Login")

    async def test_valid_login(browser_session):
        page = LoginPage(browser_session)
        ...

Options: ``--harness-config PATH`` selects the properties file and
``--cfg key=value`` (repeatable) overrides single keys.
"""
from __future__ import annotations

import functools
import inspect
import logging
import shutil
import uuid
from pathlib import Path
from typing import Dict, List, Optional

import anyio
import pytest

from authflow_e2e.config import ConfigStore, init_settings
from authflow_e2e.controller import ExecutionController
from authflow_e2e.exceptions import SkipTest
from authflow_e2e.logging_config import configure_logging
from authflow_e2e.reporting import ReportSink

logger = logging.getLogger(__name__)

CONTROLLER_KEY = pytest.StashKey[ExecutionController]()
PARTS_DIR_KEY = "authflow_parts_dir"


def parse_overrides(values: List[str]) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for item in values:
        if "=" not in item:
            raise pytest.UsageError(f"--cfg expects KEY=VALUE, got {item!r}")
        key, value = item.split("=", 1)
        overrides[key.strip()] = value.strip()
    return overrides


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("authflow", "auth-flow E2E harness")
    group.addoption(
        "--harness-config",
        action="store",
        default=None,
        metavar="PATH",
        help="properties file with harness configuration (default: config/config.properties)",
    )
    group.addoption(
        "--cfg",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="override one configuration key; may be repeated",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "e2e(author=None, category=None, description=None): run through the execution "
        "controller with a fresh browser session per attempt",
    )
    settings = init_settings(
        config.getoption("--harness-config"),
        overrides=parse_overrides(config.getoption("--cfg")),
    )
    configure_logging(settings.log_level, settings.log_file)
    workerinput = getattr(config, "workerinput", None)
    if workerinput is not None:
        # pytest-xdist worker: records go to the parts directory of the controlling process
        sink = ReportSink(settings, parts_dir=Path(workerinput[PARTS_DIR_KEY]), worker_id=workerinput["workerid"])
    else:
        sink = ReportSink(settings, parts_dir=settings.report_path.resolve() / f".parts-{uuid.uuid4().hex}")
    config.stash[CONTROLLER_KEY] = ExecutionController(settings, sink, skip_exceptions=(pytest.skip.Exception,))


@pytest.hookimpl(optionalhook=True)
def pytest_configure_node(node) -> None:
    """Tell each pytest-xdist worker where to leave its records."""
    controller = _controller(node.config)
    if controller is not None:
        node.workerinput[PARTS_DIR_KEY] = str(controller.sink.parts_dir)


def _controller(config: pytest.Config) -> Optional[ExecutionController]:
    return config.stash.get(CONTROLLER_KEY, None)


def _is_distributing(config: pytest.Config) -> bool:
    return getattr(config, "workerinput", None) is None and config.pluginmanager.hasplugin("dsession")


def pytest_collection_finish(session: pytest.Session) -> None:
    controller = _controller(session.config)
    if controller is not None and any(item.get_closest_marker("e2e") for item in session.items):
        controller.on_suite_start()


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    controller = _controller(session.config)
    if controller is None:
        return
    parts_dir = controller.sink.parts_dir
    if _is_distributing(session.config) and parts_dir is not None and any(parts_dir.glob("*.json")):
        # workers have finished; render their records into one report
        controller.on_suite_start()
    try:
        controller.on_suite_end()
    finally:
        if not controller.sink.is_worker and parts_dir is not None:
            shutil.rmtree(parts_dir, ignore_errors=True)


@pytest.fixture
def settings(request: pytest.FixtureRequest) -> ConfigStore:
    """The harness configuration store."""
    return request.config.stash[CONTROLLER_KEY].settings


@pytest.fixture
def browser_session() -> None:
    """Placeholder: the live Session is injected by the controller for ``e2e`` tests."""
    return None


def _categories(marker: pytest.Mark) -> List[str]:
    category = marker.kwargs.get("category")
    if category is None:
        return []
    return [category] if isinstance(category, str) else list(category)


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> Optional[bool]:
    marker = pyfuncitem.get_closest_marker("e2e")
    if marker is None or not inspect.iscoroutinefunction(pyfuncitem.obj):
        return None
    controller = pyfuncitem.config.stash[CONTROLLER_KEY]
    testfunction = pyfuncitem.obj
    funcargs = pyfuncitem.funcargs
    argnames = pyfuncitem._fixtureinfo.argnames

    async def body(session):
        kwargs = {name: funcargs[name] for name in argnames}
        if "browser_session" in kwargs:
            kwargs["browser_session"] = session
        await testfunction(**kwargs)

    doc = inspect.getdoc(testfunction) or ""
    group = pyfuncitem.cls.__name__ if pyfuncitem.cls else pyfuncitem.module.__name__.rsplit(".", 1)[-1]
    try:
        anyio.run(
            functools.partial(
                controller.run,
                pyfuncitem.name,
                body,
                group=group,
                description=marker.kwargs.get("description") or doc.split("\n", 1)[0],
                author=marker.kwargs.get("author", ""),
                categories=_categories(marker),
            )
        )
    except SkipTest as exc:
        pytest.skip(str(exc) or "skipped by the test")
    return True
