"""Shared behaviour for page objects."""
from __future__ import annotations

import logging
from typing import Optional

from authflow_e2e.exceptions import ElementNotFound
from authflow_e2e.interactor import BaseInteractor
from authflow_e2e.locators import LocatorSet, css, text
from authflow_e2e.session import Session

logger = logging.getLogger(__name__)

# Indicators shared by several pages.
DASHBOARD_INDICATOR = LocatorSet(
    "dashboard indicator",
    "[data-testid='dashboard']",
    ".dashboard",
    "h1:contains('Dashboard')",
)
SUCCESS_MESSAGE = LocatorSet(
    "success message",
    ".success",
    ".alert-success",
    ".notification-success",
    "[data-testid*='success']",
)
ERROR_MESSAGE = LocatorSet(
    "error message",
    ".error",
    ".alert-error",
    ".notification-error",
    "[data-testid*='error']",
    ".invalid-feedback",
)
ONBOARDING_INDICATOR = LocatorSet(
    "onboarding indicator",
    "[data-testid*='onboarding']",
    ".onboarding",
    text("Welcome"),
    css("h1:contains('Setup')"),
)


class BasePage(BaseInteractor):
    """A page of the application under test.

    Atomic actions on optional elements log a warning and return when the
    element is absent on the current UI variant; with ``strict.mode`` enabled
    they raise :class:`ElementNotFound` instead.
    """

    path = "/"

    def __init__(self, session: Optional[Session] = None) -> None:
        super().__init__(session)

    # ---- navigation ------------------------------------------------------------
    async def open(self, path: Optional[str] = None) -> None:
        url = self.settings.url(path or self.path)
        await self.navigate(url)
        await self.wait_doc_ready()
        logger.info(f"Navigated to URL: {url}")

    async def page_title(self) -> str:
        return await self.title()

    async def refresh_page(self) -> None:
        await self.refresh()
        logger.debug("Page refreshed")

    async def settle(self, url_before: Optional[str] = None) -> bool:
        """Wait (bounded by ``settle.seconds``) for a redirect away from ``url_before``."""
        budget = self.settings.settle_seconds
        if budget <= 0:
            return False
        return await self.wait_url_change(url_before or self.current_url, timeout=budget)

    def url_contains(self, *fragments: str) -> bool:
        url = self.current_url.lower()
        return any(fragment in url for fragment in fragments)

    async def any_displayed(self, *targets: LocatorSet) -> bool:
        for target in targets:
            if await self.is_displayed(target):
                return True
        return False

    # ---- log-and-return actions ------------------------------------------------
    def _absent(self, locators: LocatorSet, action: str) -> None:
        if self.settings.strict_mode:
            raise ElementNotFound(
                name=action,
                payload={"target": locators.name, "candidates": [str(c) for c in locators]},
                message="element not found on this page",
            )
        logger.warning(f"{locators.name.capitalize()} not found; skipping {action}")

    async def type_if_present(self, locators: LocatorSet, value: str, secret: bool = False) -> bool:
        if not await self.is_displayed(locators):
            self._absent(locators, "type")
            return False
        await self.type(locators, value, secret=secret)
        return True

    async def click_if_present(self, locators: LocatorSet) -> bool:
        if not await self.is_displayed(locators):
            self._absent(locators, "click")
            return False
        await self.click(locators)
        return True

    async def select_if_present(self, locators: LocatorSet, label: str) -> bool:
        if not await self.is_displayed(locators):
            self._absent(locators, "select")
            return False
        await self.select_option(locators, label)
        return True

    async def check_if_present(self, locators: LocatorSet, checked: bool) -> bool:
        if not await self.is_displayed(locators):
            self._absent(locators, "check")
            return False
        if await self.is_checked(locators) != checked:
            await self.set_checked(locators, checked)
        return True

    async def text_if_displayed(self, locators: LocatorSet) -> str:
        if await self.is_displayed(locators):
            return await self.read_text(locators)
        return ""

    async def clear_if_present(self, *fields: LocatorSet) -> None:
        for locators in fields:
            if await self.is_displayed(locators):
                element = await self.wait_visible(locators)
                await element.clear()
