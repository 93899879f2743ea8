"""Progress Tracker backend: email-OTP authentication and session issuance."""

__version__ = "1.0.0"
