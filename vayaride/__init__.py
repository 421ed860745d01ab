"""VayaRide — driver onboarding and ride dispatch over Telegram."""

__version__ = "1.0.0"
