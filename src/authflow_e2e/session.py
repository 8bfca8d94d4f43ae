"""Browser sessions and the factory that builds them.

Each :class:`Session` owns its own Playwright driver, browser process,
context and page. The session belonging to the running worker is kept in a
context variable, so concurrent workers (threads or tasks) never see each
other's browser.
"""
from __future__ import annotations

import contextvars
import logging
import subprocess
import sys
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from authflow_e2e.config import ConfigStore, freeze_settings, get_settings
from authflow_e2e.exceptions import NoActiveSession, SessionAlreadyActive, UnsupportedBrowser

logger = logging.getLogger(__name__)

# name -> (playwright engine, default channel)
BROWSERS: Dict[str, Tuple[str, Optional[str]]] = {
    "chrome": ("chromium", None),
    "edge": ("chromium", "msedge"),
    "firefox": ("firefox", None),
}

CHROMIUM_HARDENING_ARGS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
    "--disable-extensions",
]

_current: contextvars.ContextVar[Optional["Session"]] = contextvars.ContextVar(
    "authflow_current_session", default=None
)

_install_lock = threading.Lock()
_installed_targets: Set[str] = set()


@dataclass
class Session:
    """One running browser plus the settings it was configured with."""

    browser_name: str
    settings: ConfigStore
    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page
    closed: bool = field(default=False, init=False)

    @property
    def engine(self) -> str:
        return BROWSERS[self.browser_name][0]

    def __repr__(self) -> str:
        return f"Session(browser={self.browser_name}, closed={self.closed})"


def resolve_browser(name: str) -> Tuple[str, Optional[str]]:
    """Map a configured browser name to ``(engine, channel)``."""
    key = (name or "").strip().lower()
    if key not in BROWSERS:
        raise UnsupportedBrowser(name)
    return BROWSERS[key]


def ensure_browser_installed(target: str) -> None:
    """Run ``playwright install <target>`` once per process."""
    with _install_lock:
        if target in _installed_targets:
            return
        logger.info(f"Installing Playwright browser: {target}")
        subprocess.run([sys.executable, "-m", "playwright", "install", target], check=True)
        _installed_targets.add(target)


def current_session() -> Session:
    """Return the Session bound to the running worker."""
    session = _current.get()
    if session is None:
        raise NoActiveSession("No browser session is active on this worker")
    return session


def peek_session() -> Optional[Session]:
    return _current.get()


def bind_session(session: Session) -> contextvars.Token:
    if _current.get() is not None:
        raise SessionAlreadyActive("A browser session is already active on this worker")
    return _current.set(session)


def clear_session() -> None:
    _current.set(None)


class SessionFactory:
    """Builds fully configured Sessions from a ConfigStore."""

    def __init__(self, settings: Optional[ConfigStore] = None) -> None:
        self.settings = settings

    def launch_options(self, browser_name: str) -> Dict[str, Any]:
        settings = self.settings or get_settings()
        engine, channel = resolve_browser(browser_name)
        options: Dict[str, Any] = {"headless": settings.headless}
        if settings.slow_mo_ms > 0:
            options["slow_mo"] = settings.slow_mo_ms
        if engine == "chromium":
            args: List[str] = list(CHROMIUM_HARDENING_ARGS)
            if settings.maximize_window:
                args.append("--start-maximized")
            options["args"] = args
            options["ignore_default_args"] = ["--enable-automation"]
            channel = settings.browser_channel if browser_name == "chrome" and settings.browser_channel else channel
            if channel:
                options["channel"] = channel
        return options

    def context_options(self, browser_name: str) -> Dict[str, Any]:
        settings = self.settings or get_settings()
        engine, _ = resolve_browser(browser_name)
        if settings.maximize_window and engine == "chromium":
            return {"no_viewport": True}
        return {"viewport": settings.viewport}

    async def create(self, browser_name: Optional[str] = None, bind: bool = True) -> Session:
        """Launch a browser and return a Session bound to the current worker."""
        settings = self.settings or get_settings()
        browser_name = (browser_name or settings.browser).strip().lower()
        engine, _ = resolve_browser(browser_name)
        if bind and _current.get() is not None:
            raise SessionAlreadyActive("A browser session is already active on this worker")

        freeze_settings()
        if settings.auto_install_browsers:
            ensure_browser_installed(BROWSERS[browser_name][1] or engine)

        playwright = browser = context = None
        try:
            playwright = await async_playwright().start()
            browser = await getattr(playwright, engine).launch(**self.launch_options(browser_name))
            context = await browser.new_context(**self.context_options(browser_name))
            context.set_default_timeout(settings.implicit_wait * 1000)
            page = await context.new_page()
            page.set_default_navigation_timeout(settings.page_load_timeout * 1000)
        except BaseException:
            await _teardown(context, browser, playwright)
            raise

        if settings.incognito:
            logger.info("Incognito requested: every session already runs in a fresh browser context")
        session = Session(browser_name, settings, playwright, browser, context, page)
        if bind:
            _current.set(session)
        logger.info(f"Browser session created: {browser_name} (engine={engine}, headless={settings.headless})")
        return session


async def _teardown(*parts: Any) -> Optional[BaseException]:
    """Close context, browser and driver in order; return the first error."""
    first: Optional[BaseException] = None
    for part in parts:
        if part is None:
            continue
        try:
            if hasattr(part, "stop"):
                await part.stop()
            else:
                await part.close()
        except Exception as exc:
            logger.warning(f"Failed to close {type(part).__name__}: {exc}")
            if first is None:
                first = exc
    return first


async def create_session(settings: Optional[ConfigStore] = None, browser_name: Optional[str] = None) -> Session:
    return await SessionFactory(settings).create(browser_name)


async def quit_session(session: Optional[Session] = None) -> None:
    """Shut the browser down and release the worker-local slot.

    The slot is cleared even when shutdown fails; the first shutdown error is
    re-raised afterwards.
    """
    session = session or _current.get()
    if session is None:
        return
    error: Optional[BaseException] = None
    try:
        if not session.closed:
            error = await _teardown(session.page, session.context, session.browser, session.playwright)
            session.closed = True
            logger.info(f"Browser session quit: {session.browser_name}")
    finally:
        if _current.get() is session:
            _current.set(None)
    if error is not None:
        raise error
