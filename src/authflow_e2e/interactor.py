"""Element interaction layer: waits, actions and non-throwing probes.

Every wait polls the locator candidates on ``poll.interval.ms`` until the
condition holds or the explicit-wait budget runs out, in which case
:class:`ElementTimeout` is raised. Actions wrap Playwright failures in
:class:`InteractionError`.
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

import anyio
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator as Element
from playwright.async_api import TimeoutError as PlaywrightTimeout

from authflow_e2e.exceptions import ElementTimeout, InteractionError
from authflow_e2e.locators import Locator, LocatorSet, Target, as_locator_set
from authflow_e2e.session import Session, current_session

logger = logging.getLogger(__name__)

# Elements inspected per candidate when looking for one that satisfies a condition.
MAX_MATCHES = 10

Condition = Callable[[Element], Awaitable[bool]]


async def _visible(element: Element) -> bool:
    return await element.is_visible()


async def _clickable(element: Element) -> bool:
    return await element.is_visible() and await element.is_enabled()


async def _present(element: Element) -> bool:
    return True


class BaseInteractor:
    """Waits and actions against the page of one Session."""

    def __init__(self, session: Optional[Session] = None) -> None:
        self.session = session or current_session()
        self.page = self.session.page
        self.settings = self.session.settings

    # ---- resolution ------------------------------------------------------------
    async def _match(self, candidate: Locator, condition: Condition) -> Optional[Element]:
        try:
            matches = self.page.locator(candidate.selector)
            for index in range(min(await matches.count(), MAX_MATCHES)):
                element = matches.nth(index)
                if await condition(element):
                    return element
        except PlaywrightError as exc:
            logger.debug(f"Candidate {candidate} not usable yet: {exc}")
        return None

    async def _find(self, locators: LocatorSet, condition: Condition) -> Optional[Element]:
        for candidate in locators:
            element = await self._match(candidate, condition)
            if element is not None:
                logger.debug(f"'{locators.name}' resolved via {candidate}")
                return element
        return None

    async def _poll(
        self,
        name: str,
        target: Target,
        condition: Condition,
        timeout: Optional[float],
    ) -> Element:
        locators = as_locator_set(target)
        budget = self.settings.explicit_wait if timeout is None else timeout
        deadline = anyio.current_time() + budget
        while True:
            element = await self._find(locators, condition)
            if element is not None:
                return element
            if anyio.current_time() >= deadline:
                raise ElementTimeout(
                    name=name,
                    payload={"target": locators.name, "candidates": [str(c) for c in locators]},
                    message=f"condition not met within {budget}s",
                )
            await anyio.sleep(self.settings.poll_interval)

    # ---- waits -----------------------------------------------------------------
    async def wait_visible(self, target: Target, timeout: Optional[float] = None) -> Element:
        return await self._poll("wait_visible", target, _visible, timeout)

    async def wait_clickable(self, target: Target, timeout: Optional[float] = None) -> Element:
        return await self._poll("wait_clickable", target, _clickable, timeout)

    async def wait_present(self, target: Target, timeout: Optional[float] = None) -> Element:
        return await self._poll("wait_present", target, _present, timeout)

    async def wait_text_in(self, target: Target, expected: str, timeout: Optional[float] = None) -> bool:
        async def contains_text(element: Element) -> bool:
            return await element.is_visible() and expected in (await element.inner_text())

        await self._poll("wait_text_in", target, contains_text, timeout)
        return True

    async def wait_gone(self, target: Target, timeout: Optional[float] = None) -> bool:
        locators = as_locator_set(target)
        budget = self.settings.explicit_wait if timeout is None else timeout
        deadline = anyio.current_time() + budget
        while await self._find(locators, _visible) is not None:
            if anyio.current_time() >= deadline:
                raise ElementTimeout(
                    name="wait_gone",
                    payload={"target": locators.name},
                    message=f"element still visible after {budget}s",
                )
            await anyio.sleep(self.settings.poll_interval)
        return True

    async def wait_doc_ready(self, timeout: Optional[float] = None) -> None:
        budget = self.settings.explicit_wait if timeout is None else timeout
        try:
            await self.page.wait_for_function("document.readyState === 'complete'", timeout=budget * 1000)
        except PlaywrightTimeout as exc:
            raise ElementTimeout(
                name="wait_doc_ready", payload={"url": self.page.url}, message=str(exc)
            ) from exc

    async def wait_url_change(self, previous: str, timeout: Optional[float] = None) -> bool:
        """Poll until the URL differs from ``previous``; False when it never does."""
        budget = self.settings.explicit_wait if timeout is None else timeout
        deadline = anyio.current_time() + budget
        while self.page.url == previous:
            if anyio.current_time() >= deadline:
                return False
            await anyio.sleep(self.settings.poll_interval)
        return True

    # ---- actions ---------------------------------------------------------------
    async def click(self, target: Target, timeout: Optional[float] = None) -> None:
        element = await self.wait_clickable(target, timeout)
        try:
            await element.click()
        except PlaywrightError as exc:
            raise InteractionError(
                name="click", payload={"target": as_locator_set(target).name}, message=str(exc)
            ) from exc

    async def type(self, target: Target, value: str, timeout: Optional[float] = None, secret: bool = False) -> None:
        """Clear the field, then write ``value``."""
        element = await self.wait_visible(target, timeout)
        shown = "***" if secret else value
        try:
            await element.clear()
            await element.fill(value)
        except PlaywrightError as exc:
            raise InteractionError(
                name="type", payload={"target": as_locator_set(target).name, "value": shown}, message=str(exc)
            ) from exc
        logger.debug(f"Typed {shown!r} into '{as_locator_set(target).name}'")

    async def read_text(self, target: Target, timeout: Optional[float] = None) -> str:
        element = await self.wait_visible(target, timeout)
        try:
            return (await element.inner_text()).strip()
        except PlaywrightError as exc:
            raise InteractionError(
                name="read_text", payload={"target": as_locator_set(target).name}, message=str(exc)
            ) from exc

    async def read_attr(self, target: Target, name: str, timeout: Optional[float] = None) -> str:
        element = await self.wait_present(target, timeout)
        try:
            return await element.get_attribute(name) or ""
        except PlaywrightError as exc:
            raise InteractionError(
                name="read_attr", payload={"target": as_locator_set(target).name, "attribute": name}, message=str(exc)
            ) from exc

    async def read_value(self, target: Target, timeout: Optional[float] = None) -> str:
        element = await self.wait_present(target, timeout)
        try:
            return await element.input_value()
        except PlaywrightError as exc:
            raise InteractionError(
                name="read_value", payload={"target": as_locator_set(target).name}, message=str(exc)
            ) from exc

    async def scroll_into(self, target: Target, timeout: Optional[float] = None) -> None:
        element = await self.wait_present(target, timeout)
        try:
            await element.evaluate("el => el.scrollIntoView(true)")
        except PlaywrightError as exc:
            raise InteractionError(
                name="scroll_into", payload={"target": as_locator_set(target).name}, message=str(exc)
            ) from exc

    async def select_option(self, target: Target, label: str, timeout: Optional[float] = None) -> None:
        element = await self.wait_visible(target, timeout)
        try:
            await element.select_option(label=label)
        except PlaywrightError as exc:
            raise InteractionError(
                name="select_option", payload={"target": as_locator_set(target).name, "label": label}, message=str(exc)
            ) from exc

    async def set_checked(self, target: Target, checked: bool, timeout: Optional[float] = None) -> None:
        element = await self.wait_present(target, timeout)
        try:
            await element.set_checked(checked)
        except PlaywrightError as exc:
            raise InteractionError(
                name="set_checked", payload={"target": as_locator_set(target).name, "checked": checked}, message=str(exc)
            ) from exc

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run a script in the page; no wait condition applies."""
        try:
            return await self.page.evaluate(script, arg)
        except PlaywrightError as exc:
            raise InteractionError(name="evaluate", payload={"script": script}, message=str(exc)) from exc

    # ---- navigation ------------------------------------------------------------
    async def navigate(self, url: str) -> None:
        try:
            await self.page.goto(url)
        except PlaywrightTimeout as exc:
            raise ElementTimeout(name="navigate", payload={"url": url}, message=str(exc)) from exc
        except PlaywrightError as exc:
            raise InteractionError(name="navigate", payload={"url": url}, message=str(exc)) from exc
        logger.debug(f"Navigated to {url}")

    async def refresh(self) -> None:
        try:
            await self.page.reload()
        except PlaywrightError as exc:
            raise InteractionError(name="refresh", payload={"url": self.page.url}, message=str(exc)) from exc

    @property
    def current_url(self) -> str:
        return self.page.url

    async def title(self) -> str:
        return await self.page.title()

    # ---- non-throwing probes ---------------------------------------------------
    async def is_displayed(self, target: Target) -> bool:
        try:
            return await self._find(as_locator_set(target), _visible) is not None
        except Exception as exc:
            logger.debug(f"is_displayed({target!r}) swallowed: {exc}")
            return False

    async def is_enabled(self, target: Target, timeout: Optional[float] = None) -> bool:
        try:
            element = await self.wait_present(target, timeout)
            return await element.is_enabled()
        except Exception as exc:
            logger.debug(f"is_enabled({target!r}) swallowed: {exc}")
            return False

    async def is_checked(self, target: Target) -> bool:
        try:
            element = await self._find(as_locator_set(target), _present)
            return element is not None and await element.is_checked()
        except Exception as exc:
            logger.debug(f"is_checked({target!r}) swallowed: {exc}")
            return False

    async def count(self, target: Target) -> int:
        """Number of elements matched by the first candidate that matches any."""
        for candidate in as_locator_set(target):
            try:
                found = await self.page.locator(candidate.selector).count()
            except PlaywrightError:
                continue
            if found:
                return found
        return 0

    async def is_present(self, target: Target) -> bool:
        return await self.count(target) > 0

    async def is_text_present(self, value: str) -> bool:
        """Substring check against the page source."""
        try:
            return value in await self.page.content()
        except PlaywrightError as exc:
            logger.debug(f"is_text_present({value!r}) swallowed: {exc}")
            return False
