"""Test data for signup, login and onboarding scenarios."""
from __future__ import annotations

import string
from datetime import datetime
from typing import Optional

from faker import Faker

from authflow_e2e.config import ConfigStore, get_settings

fake = Faker()

ALNUM = string.ascii_letters + string.digits
SPECIAL = "!@#$%^&*"

INVALID_EMAILS = (
    "invalid.email",
    "test@",
    "@domain.com",
    "test..test@domain.com",
    "test@domain",
    "test space@domain.com",
)


def unique_email(settings: Optional[ConfigStore] = None) -> str:
    """``<prefix>+<timestamp or random>`` at the configured test domain."""
    settings = settings or get_settings()
    if settings.use_timestamp_in_email:
        suffix = datetime.now().strftime("%Y%m%d%H%M%S")
    else:
        suffix = fake.lexify("?" * 8, letters=string.ascii_lowercase + string.digits)
    return f"{settings.email_prefix}+{suffix}{settings.email_domain}"


def valid_password() -> str:
    """Two upper, three lower, two digits and one special character."""
    return (
        fake.lexify("??", letters=string.ascii_uppercase)
        + fake.lexify("???", letters=string.ascii_lowercase)
        + fake.numerify("##")
        + fake.lexify("?", letters=SPECIAL)
    )


def weak_password() -> str:
    return "weak123"


def invalid_email() -> str:
    return fake.random_element(INVALID_EMAILS)


def first_name() -> str:
    return fake.first_name()


def last_name() -> str:
    return fake.last_name()


def company_name() -> str:
    return fake.company()


def phone_number() -> str:
    return fake.phone_number()


def random_text(length: int) -> str:
    return fake.lexify("?" * length, letters=ALNUM) if length > 0 else ""


def xss_payload() -> str:
    return "<script>alert('XSS')</script>"


def sql_injection_payload() -> str:
    return "'; DROP TABLE users; --"


def very_long_text() -> str:
    return random_text(300)


def mock_otp(settings: Optional[ConfigStore] = None) -> str:
    return (settings or get_settings()).otp_mock_value
