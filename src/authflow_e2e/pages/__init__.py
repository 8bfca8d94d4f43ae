from authflow_e2e.pages.base import BasePage
from authflow_e2e.pages.email_verification import EmailVerificationPage
from authflow_e2e.pages.login import LoginPage
from authflow_e2e.pages.onboarding import OnboardingPage
from authflow_e2e.pages.signup import SignupPage

__all__ = ["BasePage", "EmailVerificationPage", "LoginPage", "OnboardingPage", "SignupPage"]
