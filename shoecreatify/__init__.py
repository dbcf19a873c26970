"""shoecreatify - identity backend (registration, OTP verification, sessions)."""

__version__ = "0.1.0"
