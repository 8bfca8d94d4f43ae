"""Page objects: log-and-return actions, strict mode, heuristics and onboarding loop."""
import logging

import pytest

from authflow_e2e.exceptions import ElementNotFound, ElementTimeout
from authflow_e2e.otp import MockOtpProvider
from authflow_e2e.pages import EmailVerificationPage, LoginPage, OnboardingPage, SignupPage
from fakes import FakePage, make_session, make_settings

pytestmark = pytest.mark.asyncio


def signup_form(page):
    return {
        "email": page.add("input[type='email']"),
        "password": page.add("#password", attrs={"type": "password"}),
        "submit": page.add("button[type='submit']"),
    }


async def test_signup_minimal_tolerates_absent_optional_fields():
    page = FakePage("http://app.test/signup")
    form = signup_form(page)
    signup = SignupPage(make_session(make_settings(), page))

    await signup.signup_minimal("qa+1@example.com", "Ab1!Ab1!")

    assert form["email"].value == "qa+1@example.com"
    assert form["password"].value == "Ab1!Ab1!"
    assert form["submit"].clicks == 1


async def test_absent_optional_field_logs_warning_and_returns(caplog):
    page = FakePage("http://app.test/signup")
    form = signup_form(page)
    signup = SignupPage(make_session(make_settings(), page))

    with caplog.at_level(logging.WARNING, logger="authflow_e2e"):
        await signup.signup_complete("Ada", "Lovelace", "qa+2@example.com", "Ab1!Ab1!", "555-0100", "Acme")

    assert form["submit"].clicks == 1
    assert "First name field not found" in caplog.text


async def test_strict_mode_raises_for_absent_element():
    page = FakePage("http://app.test/signup")
    signup = SignupPage(make_session(make_settings(**{"strict.mode": "true"}), page))
    with pytest.raises(ElementNotFound) as excinfo:
        await signup.enter_first_name("Ada")
    assert excinfo.value.payload["target"] == "first name field"


async def test_terms_checkbox_is_ticked_when_present():
    page = FakePage("http://app.test/signup")
    signup_form(page)
    terms = page.add("input[type='checkbox'][name*='terms']")
    signup = SignupPage(make_session(make_settings(), page))
    await signup.signup_minimal("qa+3@example.com", "Ab1!Ab1!")
    assert terms.checked is True


@pytest.mark.parametrize("field_type, masked", [("password", True), ("text", False)])
async def test_password_masking_reads_type_attribute(field_type, masked):
    page = FakePage("http://app.test/signup")
    page.add("#password", attrs={"type": field_type})
    signup = SignupPage(make_session(make_settings(), page))
    assert await signup.is_password_masked() is masked


async def test_signup_success_heuristics():
    page = FakePage("http://app.test/signup")
    signup = SignupPage(make_session(make_settings(), page))
    assert await signup.is_signup_successful() is False

    page.url = "http://app.test/verify-email"
    assert await signup.is_signup_successful() is True

    page.url = "http://app.test/signup"
    page.add("check your email")
    assert await signup.is_verification_step_shown() is True


async def test_signup_error_detection():
    page = FakePage("http://app.test/signup")
    page.add(".invalid-feedback", text="Please enter a valid email")
    signup = SignupPage(make_session(make_settings(), page))
    assert await signup.is_error_message_displayed() is True
    assert await signup.get_general_error_message() == "Please enter a valid email"
    assert await signup.get_email_error_message() == ""


@pytest.mark.parametrize(
    "url, dashboard, expected",
    [
        ("http://app.test/dashboard", False, True),
        ("http://app.test/home", False, True),
        ("http://app.test/account", False, True),
        ("http://app.test/login", False, False),
        ("http://app.test/login", True, True),
    ],
)
async def test_login_success_heuristics(url, dashboard, expected):
    page = FakePage(url)
    if dashboard:
        page.add("[data-testid='dashboard']")
    login = LoginPage(make_session(make_settings(), page))
    assert await login.is_login_successful() is expected


async def test_login_flow_and_remember_me():
    page = FakePage("http://app.test/login")
    email = page.add("input[type='email']")
    password = page.add("input[type='password']", attrs={"type": "password"})
    remember = page.add("input[type='checkbox'][name*='remember']")
    submit = page.add("button[type='submit']")
    login = LoginPage(make_session(make_settings(), page))

    await login.login_with_remember_me("qa@example.com", "secret", True)

    assert (email.value, password.value) == ("qa@example.com", "secret")
    assert remember.checked is True
    assert submit.clicks == 1
    assert await login.is_on_login_page() is True


async def test_password_is_never_logged(caplog):
    page = FakePage("http://app.test/login")
    page.add("input[type='email']")
    page.add("input[type='password']")
    page.add("button[type='submit']")
    login = LoginPage(make_session(make_settings(), page))
    with caplog.at_level(logging.DEBUG, logger="authflow_e2e"):
        await login.login("qa@example.com", "TopSecret!9")
    assert "TopSecret!9" not in caplog.text
    assert "Entered password" in caplog.text


async def test_verify_with_mock_otp_submits_configured_code():
    page = FakePage("http://app.test/verify")
    code = page.add("#otp")
    verify = page.add("button[type='submit']")
    verification = EmailVerificationPage(make_session(make_settings(**{"otp.mock.value": "654321"}), page))

    await verification.verify_with_mock_otp()

    assert code.value == "654321"
    assert verify.clicks == 1


async def test_verify_with_otp_uses_provider():
    settings = make_settings(**{"otp.wait.seconds": "0", "otp.mock.value": "4321"})
    page = FakePage("http://app.test/verify")
    code = page.add("input[name*='code']")
    page.add("button[type='submit']")
    verification = EmailVerificationPage(make_session(settings, page))

    submitted = await verification.verify_with_otp("qa@example.com", MockOtpProvider(settings))

    assert submitted == "4321"
    assert code.value == "4321"


async def test_verification_success_heuristics():
    page = FakePage("http://app.test/verify")
    verification = EmailVerificationPage(make_session(make_settings(), page))
    assert await verification.is_on_verification_page() is True
    assert await verification.is_verification_successful() is False
    page.url = "http://app.test/onboarding/step-1"
    assert await verification.is_verification_successful() is True


async def test_onboarding_loop_is_capped():
    page = FakePage("http://app.test/onboarding")
    next_button = page.add("button:has-text('Next')")
    onboarding = OnboardingPage(make_session(make_settings(**{"onboarding.max.steps": "5"}), page))

    steps = await onboarding.complete_onboarding_minimal()

    assert steps == 5
    assert next_button.clicks == 5


async def test_onboarding_prefers_finish_over_next_and_fills_organization():
    page = FakePage("http://app.test/onboarding")
    org = page.add("input[name*='organization']")
    next_button = page.add("button:has-text('Next')")
    finish = page.add("button:has-text('Finish')")
    onboarding = OnboardingPage(make_session(make_settings(), page))

    steps = await onboarding.complete_onboarding_minimal()

    assert steps == 1
    assert finish.clicks == 1
    assert next_button.clicks == 0
    assert org.value == "Test Company"


async def test_onboarding_stops_once_off_the_wizard():
    page = FakePage("http://app.test/onboarding")
    next_button = page.add("button:has-text('Next')")

    def leave(p):
        p.url = "http://app.test/dashboard"
        next_button.visible = False

    next_button.on_click = leave
    onboarding = OnboardingPage(make_session(make_settings(), page))

    assert await onboarding.complete_onboarding_minimal() == 1
    assert await onboarding.is_onboarding_completed() is True


async def test_skip_onboarding_prefers_skip_over_next():
    page = FakePage("http://app.test/onboarding")
    skip = page.add("button:has-text('Skip')")
    next_button = page.add("button:has-text('Next')")
    onboarding = OnboardingPage(make_session(make_settings(**{"onboarding.max.steps": "3"}), page))

    assert await onboarding.skip_onboarding() == 3
    assert skip.clicks == 3
    assert next_button.clicks == 0
    assert await onboarding.is_onboarding_completed() is False


async def test_full_organization_setup_selects_dropdowns():
    page = FakePage("http://app.test/onboarding")
    industry = page.add("select[name*='industry']")
    size = page.add("select[name*='size']")
    country = page.add("select[name*='country']")
    page.add("button:has-text('Next')")
    onboarding = OnboardingPage(make_session(make_settings(), page))

    await onboarding.complete_organization_setup_full("Acme", "Technology", "11-50", "Germany")

    assert (industry.selected, size.selected, country.selected) == ("Technology", "11-50", "Germany")


async def test_missing_login_email_field_raises_instead_of_skipping():
    page = FakePage("http://app.test/login")
    page.add("#password", attrs={"type": "password"})
    login = LoginPage(make_session(make_settings(), page))

    with pytest.raises(ElementTimeout):
        await login.enter_email("qa@example.com")
