"""End-to-end test harness for signup, login, email verification and onboarding flows."""

__version__ = "1.0.0"
