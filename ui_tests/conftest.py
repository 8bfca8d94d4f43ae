"""Fixtures for scenarios that run against a live application at ``base.url``."""
import logging

import httpx
import pytest

from authflow_e2e.config import get_settings
from authflow_e2e.exceptions import MissingConfig

logger = logging.getLogger("authflow_e2e.ui_tests")


@pytest.fixture(scope="session")
def application_url():
    """Base URL of the application under test, or None when it does not answer."""
    try:
        url = get_settings().base_url
    except MissingConfig:
        return None
    try:
        response = httpx.get(url, timeout=5.0, follow_redirects=True)
    except httpx.HTTPError as exc:
        logger.warning(f"Application not reachable at {url}: {exc}")
        return None
    logger.info(f"Application reachable at {url} (HTTP {response.status_code})")
    return url


@pytest.fixture(autouse=True)
def require_application(application_url):
    if application_url is None:
        pytest.skip("base.url is not reachable; start the application or pass --cfg base.url=...")


@pytest.fixture
def existing_account(settings):
    """Email and password of an account that already exists on the application."""
    default_email = f"{settings.email_prefix}{settings.email_domain}"
    return settings.get("test.existing.email", default_email), settings.get("test.existing.password", "")
