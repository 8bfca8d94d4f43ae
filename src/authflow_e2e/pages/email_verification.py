"""Email verification (OTP entry) page."""
from __future__ import annotations

import logging
from typing import Optional

from authflow_e2e.locators import LocatorSet, text
from authflow_e2e.otp import OtpProvider, build_provider, wait_for_otp_delivery
from authflow_e2e.pages.base import DASHBOARD_INDICATOR, ONBOARDING_INDICATOR, SUCCESS_MESSAGE, BasePage

logger = logging.getLogger(__name__)


class EmailVerificationPage(BasePage):
    path = "/verify"

    verification_code_field = LocatorSet(
        "verification code field",
        "input[name*='code']",
        "input[name*='otp']",
        "input[placeholder*='code' i]",
        "input[placeholder*='verification' i]",
        "#verificationCode",
        "#otp",
    )
    verify_button = LocatorSet(
        "verify button",
        "button[type='submit']",
        "button:contains('Verify')",
        "button:contains('Confirm')",
        "input[type='submit']",
    )
    resend_code_link = LocatorSet(
        "resend code link",
        "a:contains('Resend')",
        "button:contains('Resend')",
        "[data-testid*='resend']",
    )
    change_email_link = LocatorSet(
        "change email link",
        "a:contains('Change Email')",
        "a:contains('Different Email')",
        "[data-testid*='change-email']",
    )
    verification_message = LocatorSet(
        "verification message",
        text("verification code"),
        text("enter the code"),
        text("check your email"),
    )
    error_message = LocatorSet(
        "error message",
        ".error",
        ".alert-error",
        ".notification-error",
        "[data-testid*='error']",
    )
    success_message = SUCCESS_MESSAGE
    onboarding_indicator = ONBOARDING_INDICATOR
    dashboard_indicator = DASHBOARD_INDICATOR

    async def is_on_verification_page(self) -> bool:
        return self.url_contains("verify", "confirmation") or await self.any_displayed(
            self.verification_code_field, self.verification_message
        )

    async def enter_verification_code(self, code: str) -> None:
        if await self.type_if_present(self.verification_code_field, code):
            logger.info("Entered verification code")

    async def click_verify_button(self) -> None:
        if await self.click_if_present(self.verify_button):
            logger.info("Clicked verify button")

    async def click_resend_code(self) -> None:
        if await self.click_if_present(self.resend_code_link):
            logger.info("Clicked resend code link")

    async def click_change_email(self) -> None:
        if await self.click_if_present(self.change_email_link):
            logger.info("Clicked change email link")

    async def verify_with_code(self, code: str) -> None:
        await self.enter_verification_code(code)
        await self.click_verify_button()
        logger.info("Completed verification with provided code")

    async def verify_with_mock_otp(self) -> None:
        await self.verify_with_code(self.settings.otp_mock_value)
        logger.info("Completed verification with mock OTP")

    async def verify_with_otp(self, email: str, provider: Optional[OtpProvider] = None) -> str:
        """Wait for delivery, fetch the code for ``email`` and submit it."""
        provider = provider or build_provider(self.settings)
        await wait_for_otp_delivery(self.settings)
        code = await provider.aget_code(email)
        await self.verify_with_code(code)
        return code

    async def get_verification_message(self) -> str:
        return await self.text_if_displayed(self.verification_message)

    async def get_error_message(self) -> str:
        return await self.text_if_displayed(self.error_message)

    async def is_verification_successful(self) -> bool:
        await self.settle()
        return await self.any_displayed(
            self.success_message, self.onboarding_indicator, self.dashboard_indicator
        ) or self.url_contains("onboarding", "dashboard", "home")

    async def is_error_displayed(self) -> bool:
        return await self.is_displayed(self.error_message)
