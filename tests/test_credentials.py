"""Tests for dashboard PIN hashing and verification."""

from datetime import datetime, timedelta, timezone

import bcrypt
import pytest

from vayaride.services.credentials import check_pin, hash_pin
from vayaride.services.exceptions import ValidationError


def test_hash_pin_is_bcrypt_and_expires_in_a_day():
    pin_hash, expires_at = hash_pin("2468")
    assert bcrypt.checkpw(b"2468", pin_hash.encode())
    delta = expires_at - datetime.now(timezone.utc)
    assert timedelta(hours=23, minutes=59) < delta <= timedelta(hours=24)


def test_hash_pin_strips_whitespace():
    pin_hash, _ = hash_pin(" 1357\n")
    assert bcrypt.checkpw(b"1357", pin_hash.encode())


@pytest.mark.parametrize("pin", ["", "123", "12345", "12a4", "abcd", "１２３４"])
def test_hash_pin_rejects_non_four_digit(pin):
    with pytest.raises(ValidationError, match="exactly 4 digits"):
        hash_pin(pin)


def test_check_pin_matches():
    pin_hash, expires_at = hash_pin("2468")
    assert check_pin("2468", pin_hash, expires_at) is True
    assert check_pin("8642", pin_hash, expires_at) is False


def test_check_pin_expired():
    pin_hash, _ = hash_pin("2468")
    past = datetime.now(timezone.utc) - timedelta(seconds=1)
    assert check_pin("2468", pin_hash, past) is False


def test_check_pin_accepts_naive_utc_expiry():
    pin_hash, expires_at = hash_pin("2468")
    assert check_pin("2468", pin_hash, expires_at.replace(tzinfo=None)) is True


def test_check_pin_without_pin_set():
    assert check_pin("2468", None, None) is False
