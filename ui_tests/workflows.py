"""Multi-page flows shared by the scenarios."""
from __future__ import annotations

import logging
from typing import Optional, Tuple

from authflow_e2e import data_factory
from authflow_e2e.pages import EmailVerificationPage, SignupPage
from authflow_e2e.session import Session

logger = logging.getLogger("authflow_e2e.ui_tests")


async def register_new_user(session: Session, password: Optional[str] = None) -> Tuple[str, str]:
    """Sign up a fresh user with the minimal form; returns ``(email, password)``."""
    email = data_factory.unique_email(session.settings)
    password = password or data_factory.valid_password()
    signup = SignupPage(session)
    await signup.navigate_to_signup_page()
    await signup.signup_minimal(email, password)
    assert await signup.is_signup_successful(), f"Signup did not succeed for {email}: {signup.current_url}"
    return email, password


async def verify_email(session: Session, email: str) -> None:
    """Enter the OTP when the application asks for one."""
    verification = EmailVerificationPage(session)
    if not await verification.is_on_verification_page():
        logger.info("No verification step shown; continuing")
        return
    await verification.verify_with_otp(email)
    assert await verification.is_verification_successful(), (
        f"Verification failed for {email}: {await verification.get_error_message()}"
    )
