"""Signup / registration page."""
from __future__ import annotations

import logging

from authflow_e2e.locators import LocatorSet, text
from authflow_e2e.pages.base import ERROR_MESSAGE, ONBOARDING_INDICATOR, SUCCESS_MESSAGE, BasePage

logger = logging.getLogger(__name__)


class SignupPage(BasePage):
    path = "/signup"

    first_name_field = LocatorSet(
        "first name field",
        "input[name*='firstName']",
        "input[name*='first_name']",
        "input[placeholder*='first name' i]",
        "#firstName",
        "#first_name",
    )
    last_name_field = LocatorSet(
        "last name field",
        "input[name*='lastName']",
        "input[name*='last_name']",
        "input[placeholder*='last name' i]",
        "#lastName",
        "#last_name",
    )
    email_field = LocatorSet(
        "email field",
        "input[type='email']",
        "input[name*='email']",
        "input[placeholder*='email' i]",
        "#email",
    )
    password_field = LocatorSet(
        "password field",
        "input[type='password']:not([name*='confirm']):not([name*='repeat'])",
        "input[name*='password']:not([name*='confirm'])",
        "input[placeholder*='password' i]",
        "#password",
    )
    confirm_password_field = LocatorSet(
        "confirm password field",
        "input[name*='confirm']",
        "input[name*='repeat']",
        "input[placeholder*='confirm' i]",
        "#confirmPassword",
        "#confirm_password",
    )
    phone_field = LocatorSet(
        "phone field",
        "input[type='tel']",
        "input[name*='phone']",
        "input[placeholder*='phone' i]",
        "#phone",
    )
    company_field = LocatorSet(
        "company field",
        "input[name*='company']",
        "input[name*='organization']",
        "input[placeholder*='company' i]",
        "#company",
    )
    terms_checkbox = LocatorSet(
        "terms checkbox",
        "input[type='checkbox'][name*='terms']",
        "input[type='checkbox'][id*='terms']",
        "input[type='checkbox'][name*='agree']",
    )
    signup_button = LocatorSet(
        "signup button",
        "button[type='submit']",
        "button:contains('Sign Up')",
        "button:contains('Register')",
        "button:contains('Create Account')",
        "input[type='submit']",
    )
    login_link = LocatorSet(
        "login link",
        "a[href*='login']",
        "a:contains('Login')",
        "a:contains('Sign In')",
    )

    email_error = LocatorSet(
        "email error",
        ".error:contains('email')",
        ".field-error:contains('email')",
        "[data-testid*='email-error']",
        ".invalid-feedback:contains('email')",
    )
    password_error = LocatorSet(
        "password error",
        ".error:contains('password')",
        ".field-error:contains('password')",
        "[data-testid*='password-error']",
        ".invalid-feedback:contains('password')",
    )
    confirm_password_error = LocatorSet(
        "confirm password error",
        ".error:contains('confirm')",
        ".field-error:contains('confirm')",
        "[data-testid*='confirm-error']",
    )
    first_name_error = LocatorSet(
        "first name error",
        ".error:contains('first')",
        ".field-error:contains('name')",
        "[data-testid*='firstname-error']",
    )
    general_error = ERROR_MESSAGE
    success_message = SUCCESS_MESSAGE
    verification_message = LocatorSet(
        "verification message",
        text("verification"),
        text("confirm your email"),
        text("check your email"),
    )
    onboarding_indicator = ONBOARDING_INDICATOR

    # ---- navigation ------------------------------------------------------------
    async def navigate_to_signup_page(self) -> None:
        await self.open("/signup")
        logger.info("Navigated to signup page")

    async def navigate_to_register_page(self) -> None:
        await self.open("/register")
        logger.info("Navigated to register page")

    # ---- atomic interactions ---------------------------------------------------
    async def enter_first_name(self, first_name: str) -> None:
        if await self.type_if_present(self.first_name_field, first_name):
            logger.info(f"Entered first name: {first_name}")

    async def enter_last_name(self, last_name: str) -> None:
        if await self.type_if_present(self.last_name_field, last_name):
            logger.info(f"Entered last name: {last_name}")

    async def enter_email(self, email: str) -> None:
        await self.type(self.email_field, email)
        logger.info(f"Entered email: {email}")

    async def enter_password(self, password: str) -> None:
        await self.type(self.password_field, password, secret=True)
        logger.info("Entered password")

    async def enter_confirm_password(self, confirm_password: str) -> None:
        if await self.type_if_present(self.confirm_password_field, confirm_password, secret=True):
            logger.info("Entered confirm password")

    async def enter_phone(self, phone: str) -> None:
        if await self.type_if_present(self.phone_field, phone):
            logger.info(f"Entered phone: {phone}")

    async def enter_company(self, company: str) -> None:
        if await self.type_if_present(self.company_field, company):
            logger.info(f"Entered company: {company}")

    async def accept_terms(self, accept: bool = True) -> None:
        if await self.check_if_present(self.terms_checkbox, accept):
            logger.info(f"Set terms acceptance to: {accept}")

    async def click_signup_button(self) -> None:
        await self.click(self.signup_button)
        logger.info("Clicked signup button")

    async def click_login_link(self) -> None:
        if await self.click_if_present(self.login_link):
            logger.info("Clicked login link")

    # ---- compound flows --------------------------------------------------------
    async def signup_minimal(self, email: str, password: str) -> None:
        await self.enter_email(email)
        await self.enter_password(password)
        if await self.is_displayed(self.confirm_password_field):
            await self.enter_confirm_password(password)
        if await self.is_displayed(self.terms_checkbox):
            await self.accept_terms(True)
        await self.click_signup_button()
        logger.info(f"Performed minimal signup for email: {email}")

    async def signup_complete(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        phone: str,
        company: str,
    ) -> None:
        await self.enter_first_name(first_name)
        await self.enter_last_name(last_name)
        await self.enter_email(email)
        await self.enter_password(password)
        if await self.is_displayed(self.confirm_password_field):
            await self.enter_confirm_password(password)
        await self.enter_phone(phone)
        await self.enter_company(company)
        if await self.is_displayed(self.terms_checkbox):
            await self.accept_terms(True)
        await self.click_signup_button()
        logger.info(f"Performed complete signup for email: {email}")

    async def clear_all_fields(self) -> None:
        await self.clear_if_present(
            self.first_name_field,
            self.last_name_field,
            self.email_field,
            self.password_field,
            self.confirm_password_field,
            self.phone_field,
            self.company_field,
        )
        logger.info("Cleared all signup form fields")

    # ---- state queries ---------------------------------------------------------
    async def is_password_masked(self) -> bool:
        return await self.read_attr(self.password_field, "type") == "password"

    async def is_confirm_password_masked(self) -> bool:
        if await self.is_displayed(self.confirm_password_field):
            return await self.read_attr(self.confirm_password_field, "type") == "password"
        return True

    async def is_signup_button_enabled(self) -> bool:
        return await self.is_enabled(self.signup_button)

    async def get_email_error_message(self) -> str:
        return await self.text_if_displayed(self.email_error)

    async def get_password_error_message(self) -> str:
        return await self.text_if_displayed(self.password_error)

    async def get_confirm_password_error_message(self) -> str:
        return await self.text_if_displayed(self.confirm_password_error)

    async def get_first_name_error_message(self) -> str:
        return await self.text_if_displayed(self.first_name_error)

    async def get_general_error_message(self) -> str:
        return await self.text_if_displayed(self.general_error)

    async def is_error_message_displayed(self) -> bool:
        return await self.any_displayed(
            self.general_error,
            self.email_error,
            self.password_error,
            self.confirm_password_error,
            self.first_name_error,
        )

    async def is_signup_successful(self) -> bool:
        await self.settle()
        return (
            await self.any_displayed(self.success_message, self.verification_message)
            or self.url_contains("verify", "confirmation", "onboarding")
            or await self.is_displayed(self.onboarding_indicator)
        )

    async def is_on_signup_page(self) -> bool:
        return self.url_contains("signup", "register") or await self.is_displayed(self.signup_button)

    async def is_verification_step_shown(self) -> bool:
        return await self.is_displayed(self.verification_message) or self.url_contains("verify", "confirmation")

    async def get_email_field_value(self) -> str:
        return await self.read_value(self.email_field)

    async def are_required_fields_present(self) -> bool:
        return (
            await self.is_displayed(self.email_field)
            and await self.is_displayed(self.password_field)
            and await self.is_displayed(self.signup_button)
        )
