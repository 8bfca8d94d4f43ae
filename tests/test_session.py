"""Session factory options and the worker-local session slot."""
import anyio
import pytest

from authflow_e2e.exceptions import NoActiveSession, SessionAlreadyActive, UnsupportedBrowser
from authflow_e2e.session import (
    CHROMIUM_HARDENING_ARGS,
    SessionFactory,
    bind_session,
    clear_session,
    current_session,
    peek_session,
    quit_session,
    resolve_browser,
)
from fakes import FakePart, make_session, make_settings

pytestmark = pytest.mark.asyncio


@pytest.fixture(autouse=True)
def empty_slot():
    clear_session()
    yield
    clear_session()


@pytest.mark.parametrize(
    "name, expected",
    [("chrome", ("chromium", None)), ("Edge", ("chromium", "msedge")), ("firefox", ("firefox", None))],
)
async def test_browser_names_map_to_engines(name, expected):
    assert resolve_browser(name) == expected


async def test_unknown_browser_is_rejected():
    with pytest.raises(UnsupportedBrowser):
        resolve_browser("safari")


async def test_create_rejects_unknown_browser_before_launching():
    factory = SessionFactory(make_settings(browser="opera"))
    with pytest.raises(UnsupportedBrowser):
        await factory.create()
    assert peek_session() is None


async def test_chromium_launch_is_hardened():
    factory = SessionFactory(make_settings(headless="true", **{"maximize.window": "true"}))
    options = factory.launch_options("chrome")
    assert options["headless"] is True
    for arg in CHROMIUM_HARDENING_ARGS:
        assert arg in options["args"]
    assert "--start-maximized" in options["args"]
    assert options["ignore_default_args"] == ["--enable-automation"]
    assert factory.context_options("chrome") == {"no_viewport": True}


async def test_edge_uses_msedge_channel_and_firefox_gets_viewport():
    factory = SessionFactory(make_settings(**{"viewport.width": "1280", "viewport.height": "720"}))
    assert factory.launch_options("edge")["channel"] == "msedge"
    assert "args" not in factory.launch_options("firefox")
    assert factory.context_options("firefox") == {"viewport": {"width": 1280, "height": 720}}


async def test_current_session_requires_bound_session():
    with pytest.raises(NoActiveSession):
        current_session()


async def test_second_session_on_same_worker_is_rejected():
    settings = make_settings()
    make_session(settings, bind=True)
    with pytest.raises(SessionAlreadyActive):
        make_session(settings, bind=True)


async def test_quit_releases_slot_and_closes_everything():
    session = make_session(make_settings(), bind=True)
    await quit_session(session)
    assert peek_session() is None
    assert session.closed
    assert session.page.closed and session.context.closed and session.browser.closed
    assert session.playwright.stopped


async def test_quit_releases_slot_even_when_shutdown_fails():
    session = make_session(make_settings(), bind=True)
    session.browser = FakePart(error=RuntimeError("browser crashed"))
    with pytest.raises(RuntimeError, match="browser crashed"):
        await quit_session(session)
    assert peek_session() is None
    assert session.playwright.stopped


async def test_workers_do_not_share_the_slot():
    settings = make_settings()
    seen = {}

    async def worker(name):
        session = make_session(settings)
        bind_session(session)
        await anyio.sleep(0.01)
        seen[name] = current_session() is session
        await quit_session(session)

    async with anyio.create_task_group() as tg:
        for name in ("a", "b", "c"):
            tg.start_soon(worker, name)

    assert seen == {"a": True, "b": True, "c": True}
