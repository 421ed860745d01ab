"""
Dashboard PIN — validation, hashing, and verification.

Security:
  - 4-digit numeric PIN chosen by the driver
  - Hashed with bcrypt before storage
  - Expires PIN_TTL_HOURS after it was set
"""

import re
from datetime import datetime, timedelta, timezone

import bcrypt

from vayaride.config import settings
from vayaride.services.exceptions import ValidationError

PIN_RE = re.compile(r"^[0-9]{4}$")


def hash_pin(pin: str) -> tuple[str, datetime]:
    """
    Validate and hash a PIN.

    Returns:
        (bcrypt hash, expiry timestamp)

    Raises:
        ValidationError: the PIN is not exactly four digits.
    """
    pin = pin.strip()
    if not PIN_RE.match(pin):
        raise ValidationError("❌ PIN must be exactly 4 digits.")
    pin_hash = bcrypt.hashpw(pin.encode(), bcrypt.gensalt()).decode()
    expires_at = datetime.now(timezone.utc) + timedelta(hours=settings.PIN_TTL_HOURS)
    return pin_hash, expires_at


def check_pin(provided: str, pin_hash: str | None, expires_at: datetime | None) -> bool:
    """True if ``provided`` matches the stored hash and has not expired."""
    if not pin_hash or expires_at is None:
        return False
    if expires_at.tzinfo is None:
        # SQLite hands back naive datetimes
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at <= datetime.now(timezone.utc):
        return False
    return bcrypt.checkpw(provided.strip().encode(), pin_hash.encode())
