"""Post-signup onboarding wizard."""
from __future__ import annotations

import logging

from authflow_e2e.locators import LocatorSet, text
from authflow_e2e.pages.base import DASHBOARD_INDICATOR, BasePage

logger = logging.getLogger(__name__)

DEFAULT_ORGANIZATION = "Test Company"


class OnboardingPage(BasePage):
    path = "/onboarding"

    next_button = LocatorSet(
        "next button",
        "button:contains('Next')",
        "button:contains('Continue')",
        "[data-testid*='next']",
    )
    back_button = LocatorSet(
        "back button",
        "button:contains('Back')",
        "button:contains('Previous')",
        "[data-testid*='back']",
    )
    skip_button = LocatorSet(
        "skip button",
        "button:contains('Skip')",
        "a:contains('Skip')",
        "[data-testid*='skip']",
    )
    finish_button = LocatorSet(
        "finish button",
        "button:contains('Finish')",
        "button:contains('Complete')",
        "button:contains('Get Started')",
        "[data-testid*='finish']",
    )

    organization_name_field = LocatorSet(
        "organization name field",
        "input[name*='organization']",
        "input[name*='company']",
        "input[placeholder*='organization' i]",
        "input[placeholder*='company' i]",
        "#organizationName",
        "#companyName",
    )
    industry_dropdown = LocatorSet(
        "industry dropdown",
        "select[name*='industry']",
        "select[name*='sector']",
        "[data-testid*='industry']",
    )
    company_size_dropdown = LocatorSet(
        "company size dropdown",
        "select[name*='size']",
        "select[name*='employees']",
        "[data-testid*='company-size']",
    )
    country_dropdown = LocatorSet("country dropdown", "select[name*='country']", "[data-testid*='country']")
    timezone_dropdown = LocatorSet("timezone dropdown", "select[name*='timezone']", "[data-testid*='timezone']")
    currency_dropdown = LocatorSet("currency dropdown", "select[name*='currency']", "[data-testid*='currency']")

    job_title_field = LocatorSet(
        "job title field",
        "input[name*='title']",
        "input[name*='position']",
        "input[placeholder*='title' i]",
        "#jobTitle",
    )

    progress_bar = LocatorSet("progress bar", ".progress", ".stepper", "[data-testid*='progress']")
    step_indicator = LocatorSet("step indicator", ".step", ".step-indicator", "[data-testid*='step']")

    error_message = LocatorSet(
        "error message",
        ".error",
        ".alert-error",
        ".field-error",
        "[data-testid*='error']",
    )
    success_message = LocatorSet("success message", ".success", ".alert-success", "[data-testid*='success']")
    welcome_message = LocatorSet(
        "welcome message",
        "h1:contains('Welcome')",
        "h2:contains('Welcome')",
        "[data-testid*='welcome']",
    )
    dashboard_indicator = DASHBOARD_INDICATOR
    completion_message = LocatorSet(
        "completion message",
        text("setup complete"),
        text("onboarding complete"),
        "[data-testid*='complete']",
    )

    async def is_on_onboarding_page(self) -> bool:
        return self.url_contains("onboarding", "setup") or await self.any_displayed(
            self.welcome_message, self.progress_bar, self.next_button
        )

    # ---- atomic interactions ---------------------------------------------------
    async def enter_organization_name(self, organization_name: str) -> None:
        if await self.type_if_present(self.organization_name_field, organization_name):
            logger.info(f"Entered organization name: {organization_name}")

    async def select_industry(self, industry: str) -> None:
        if await self.select_if_present(self.industry_dropdown, industry):
            logger.info(f"Selected industry: {industry}")

    async def select_company_size(self, size: str) -> None:
        if await self.select_if_present(self.company_size_dropdown, size):
            logger.info(f"Selected company size: {size}")

    async def select_country(self, country: str) -> None:
        if await self.select_if_present(self.country_dropdown, country):
            logger.info(f"Selected country: {country}")

    async def select_timezone(self, timezone: str) -> None:
        if await self.select_if_present(self.timezone_dropdown, timezone):
            logger.info(f"Selected timezone: {timezone}")

    async def select_currency(self, currency: str) -> None:
        if await self.select_if_present(self.currency_dropdown, currency):
            logger.info(f"Selected currency: {currency}")

    async def enter_job_title(self, job_title: str) -> None:
        if await self.type_if_present(self.job_title_field, job_title):
            logger.info(f"Entered job title: {job_title}")

    async def click_next(self) -> None:
        if await self.click_if_present(self.next_button):
            logger.info("Clicked next button")

    async def click_back(self) -> None:
        if await self.click_if_present(self.back_button):
            logger.info("Clicked back button")

    async def click_skip(self) -> None:
        if await self.click_if_present(self.skip_button):
            logger.info("Clicked skip button")

    async def click_finish(self) -> None:
        if await self.click_if_present(self.finish_button):
            logger.info("Clicked finish button")

    # ---- compound flows --------------------------------------------------------
    async def complete_organization_setup_minimal(self, organization_name: str) -> None:
        await self.enter_organization_name(organization_name)
        await self.click_next()
        logger.info("Completed minimal organization setup")

    async def complete_organization_setup_full(
        self, organization_name: str, industry: str, size: str, country: str
    ) -> None:
        await self.enter_organization_name(organization_name)
        await self.select_industry(industry)
        await self.select_company_size(size)
        await self.select_country(country)
        await self.click_next()
        logger.info("Completed full organization setup")

    async def skip_current_step(self) -> None:
        if await self.is_displayed(self.skip_button):
            await self.click_skip()
        else:
            await self.click_next()
        logger.info("Skipped current onboarding step")

    async def complete_onboarding_minimal(self, organization_name: str = DEFAULT_ORGANIZATION) -> int:
        """Walk the wizard with minimal data; returns the number of steps taken.

        Each iteration prefers finish over next over skip and stops on the
        completion signal or after ``onboarding.max.steps`` iterations.
        """
        max_steps = self.settings.onboarding_max_steps
        steps = 0
        while steps < max_steps and await self.is_on_onboarding_page():
            if await self.is_displayed(self.organization_name_field):
                await self.enter_organization_name(organization_name)
            url_before = self.current_url
            steps += 1
            if await self.is_displayed(self.finish_button):
                await self.click_finish()
                break
            if await self.is_displayed(self.next_button):
                await self.click_next()
            elif await self.is_displayed(self.skip_button):
                await self.click_skip()
            else:
                logger.warning("No onboarding navigation control found; stopping")
                break
            await self.settle(url_before)
        logger.info(f"Completed onboarding process after {steps} step(s)")
        return steps

    async def skip_onboarding(self) -> int:
        """Skip every step (finish still wins when offered); returns the steps taken."""
        max_steps = self.settings.onboarding_max_steps
        steps = 0
        while steps < max_steps and await self.is_on_onboarding_page():
            url_before = self.current_url
            steps += 1
            if await self.is_displayed(self.finish_button):
                await self.click_finish()
                break
            if await self.is_displayed(self.skip_button):
                await self.click_skip()
            elif await self.is_displayed(self.next_button):
                await self.click_next()
            else:
                logger.warning("No skip or next control found; stopping")
                break
            await self.settle(url_before)
        logger.info(f"Skipped onboarding after {steps} step(s)")
        return steps

    # ---- state queries ---------------------------------------------------------
    async def is_next_button_enabled(self) -> bool:
        return await self.is_enabled(self.next_button)

    async def is_finish_button_displayed(self) -> bool:
        return await self.is_displayed(self.finish_button)

    async def get_current_step_info(self) -> str:
        return await self.text_if_displayed(self.step_indicator)

    async def get_error_message(self) -> str:
        return await self.text_if_displayed(self.error_message)

    async def is_onboarding_completed(self) -> bool:
        await self.settle()
        return (
            await self.any_displayed(self.dashboard_indicator, self.completion_message)
            or self.url_contains("dashboard", "home")
            or not self.url_contains("onboarding")
        )

    async def is_error_displayed(self) -> bool:
        return await self.is_displayed(self.error_message)
