"""Login page."""
from __future__ import annotations

import logging

from authflow_e2e.locators import LocatorSet
from authflow_e2e.pages.base import DASHBOARD_INDICATOR, BasePage

logger = logging.getLogger(__name__)


class LoginPage(BasePage):
    path = "/login"

    email_field = LocatorSet(
        "email field",
        "input[type='email']",
        "input[name='email']",
        "#email",
        "input[placeholder*='email' i]",
    )
    password_field = LocatorSet(
        "password field",
        "input[type='password']",
        "input[name='password']",
        "#password",
    )
    login_button = LocatorSet(
        "login button",
        "button[type='submit']",
        "button:contains('Login')",
        "button:contains('Sign In')",
        "input[type='submit']",
    )
    remember_me_checkbox = LocatorSet(
        "remember me checkbox",
        "input[type='checkbox'][name*='remember']",
        "input[type='checkbox'][id*='remember']",
    )
    forgot_password_link = LocatorSet(
        "forgot password link",
        "a[href*='forgot']",
        "a:contains('Forgot Password')",
        "a:contains('Reset Password')",
    )
    signup_link = LocatorSet(
        "signup link",
        "a[href*='signup']",
        "a[href*='register']",
        "a:contains('Sign Up')",
        "a:contains('Register')",
    )

    email_error = LocatorSet(
        "email error",
        ".error:contains('email')",
        ".field-error:contains('email')",
        "[data-testid*='email-error']",
    )
    password_error = LocatorSet(
        "password error",
        ".error:contains('password')",
        ".field-error:contains('password')",
        "[data-testid*='password-error']",
    )
    general_error = LocatorSet(
        "general error",
        ".error",
        ".alert-error",
        ".notification-error",
        "[data-testid*='error']",
    )
    success_message = LocatorSet(
        "success message",
        ".success",
        ".alert-success",
        ".notification-success",
    )
    dashboard_indicator = DASHBOARD_INDICATOR

    async def navigate_to_login_page(self) -> None:
        await self.open(self.path)
        logger.info("Navigated to login page")

    async def enter_email(self, email: str) -> None:
        await self.type(self.email_field, email)
        logger.info(f"Entered email: {email}")

    async def enter_password(self, password: str) -> None:
        await self.type(self.password_field, password, secret=True)
        logger.info("Entered password")

    async def click_login_button(self) -> None:
        await self.click(self.login_button)
        logger.info("Clicked login button")

    async def set_remember_me(self, remember: bool) -> None:
        if await self.check_if_present(self.remember_me_checkbox, remember):
            logger.info(f"Set remember me to: {remember}")

    async def click_forgot_password_link(self) -> None:
        if await self.click_if_present(self.forgot_password_link):
            logger.info("Clicked forgot password link")

    async def click_signup_link(self) -> None:
        if await self.click_if_present(self.signup_link):
            logger.info("Clicked signup link")

    async def login(self, email: str, password: str) -> None:
        await self.enter_email(email)
        await self.enter_password(password)
        await self.click_login_button()
        logger.info(f"Performed login for user: {email}")

    async def login_with_remember_me(self, email: str, password: str, remember_me: bool) -> None:
        await self.enter_email(email)
        await self.enter_password(password)
        await self.set_remember_me(remember_me)
        await self.click_login_button()
        logger.info(f"Performed login with remember me {remember_me} for user: {email}")

    async def clear_all_fields(self) -> None:
        await self.clear_if_present(self.email_field, self.password_field)
        logger.info("Cleared all login form fields")

    # ---- state queries ---------------------------------------------------------
    async def is_email_field_displayed(self) -> bool:
        return await self.is_displayed(self.email_field)

    async def is_password_field_displayed(self) -> bool:
        return await self.is_displayed(self.password_field)

    async def is_login_button_enabled(self) -> bool:
        return await self.is_enabled(self.login_button)

    async def is_password_masked(self) -> bool:
        return await self.read_attr(self.password_field, "type") == "password"

    async def get_email_field_value(self) -> str:
        return await self.read_value(self.email_field)

    async def get_email_error_message(self) -> str:
        return await self.text_if_displayed(self.email_error)

    async def get_password_error_message(self) -> str:
        return await self.text_if_displayed(self.password_error)

    async def get_general_error_message(self) -> str:
        return await self.text_if_displayed(self.general_error)

    async def is_error_message_displayed(self) -> bool:
        return await self.any_displayed(self.general_error, self.email_error, self.password_error)

    async def is_login_successful(self) -> bool:
        """Dashboard shown, or URL mentions dashboard/home, or URL left the login page."""
        await self.settle()
        return (
            await self.is_displayed(self.dashboard_indicator)
            or self.url_contains("dashboard", "home")
            or not self.url_contains("login")
        )

    async def is_on_login_page(self) -> bool:
        return self.url_contains("login") or await self.is_displayed(self.login_button)
