import re

import pytest

from authflow_e2e import data_factory
from fakes import make_settings


def test_unique_email_with_timestamp():
    settings = make_settings(**{"test.email.prefix": "qa", "test.email.domain": "example.com"})
    assert re.fullmatch(r"qa\+\d{14}@example\.com", data_factory.unique_email(settings))


def test_unique_email_with_random_suffix():
    settings = make_settings(**{"use.timestamp.in.email": "false", "test.email.domain": "@qa.test"})
    emails = {data_factory.unique_email(settings) for _ in range(20)}
    assert all(re.fullmatch(r"qa\.automation\+[a-z0-9]{8}@qa\.test", e) for e in emails)
    assert len(emails) > 1


def test_valid_password_meets_complexity_rules():
    for _ in range(20):
        password = data_factory.valid_password()
        assert len(password) == 8
        assert sum(c.isupper() for c in password) == 2
        assert sum(c.islower() for c in password) == 3
        assert sum(c.isdigit() for c in password) == 2
        assert password[-1] in data_factory.SPECIAL


def test_invalid_email_comes_from_known_bad_set():
    assert data_factory.invalid_email() in data_factory.INVALID_EMAILS


@pytest.mark.parametrize("length", [0, 1, 50])
def test_random_text_length(length):
    assert len(data_factory.random_text(length)) == length


def test_security_payloads_and_long_text():
    assert "<script>" in data_factory.xss_payload()
    assert "DROP TABLE" in data_factory.sql_injection_payload()
    assert len(data_factory.very_long_text()) == 300


def test_mock_otp_reads_settings():
    assert data_factory.mock_otp(make_settings(**{"otp.mock.value": "777777"})) == "777777"


def test_names_are_non_empty():
    assert data_factory.first_name() and data_factory.last_name() and data_factory.company_name()
