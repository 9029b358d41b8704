"""
TOTP verification (RFC 6238) on top of pyotp.

Codes are HMAC-SHA1 over the 8-byte big-endian time counter, dynamically
truncated to 31 bits and reduced modulo 10^digits. Verification accepts the
current time step and ``valid_window`` preceding steps.
"""

import binascii
import hmac
import re
from datetime import datetime
from typing import Optional, Union

import pyotp

from ..config import get_config
from ..exceptions import InvalidSeedError

_CODE_PATTERN = re.compile(r"^[0-9]{6,8}$")

ForTime = Union[int, float, datetime]


def normalize_seed(seed: str) -> str:
    """Strip whitespace and padding, upper-case, then re-pad to a multiple of 8."""
    if seed is None:
        raise InvalidSeedError("TOTP secret is required")
    cleaned = "".join(seed.split()).upper().rstrip("=")
    if not cleaned:
        raise InvalidSeedError("TOTP secret is required")
    return cleaned + "=" * (-len(cleaned) % 8)


def _build_totp(seed: str, interval: int, digits: int) -> pyotp.TOTP:
    normalized = normalize_seed(seed)
    totp = pyotp.TOTP(normalized, digits=digits, interval=interval)
    try:
        key = totp.byte_secret()
    except (binascii.Error, ValueError) as e:
        raise InvalidSeedError() from e
    if not key:
        raise InvalidSeedError()
    return totp


def validate_seed(
    seed: str, *, interval: Optional[int] = None, digits: Optional[int] = None
) -> str:
    """Return the normalized seed, or raise InvalidSeedError if it is not usable."""
    totp_config = get_config().totp
    _build_totp(seed, interval or totp_config.interval, digits or totp_config.digits)
    return normalize_seed(seed)


def _as_timestamp(for_time: Optional[ForTime]) -> ForTime:
    return datetime.now() if for_time is None else for_time


def generate_totp(
    seed: str,
    *,
    for_time: Optional[ForTime] = None,
    interval: Optional[int] = None,
    digits: Optional[int] = None,
) -> str:
    """Return the code for ``seed`` at ``for_time`` (now by default)."""
    totp_config = get_config().totp
    totp = _build_totp(seed, interval or totp_config.interval, digits or totp_config.digits)
    return totp.at(_as_timestamp(for_time))


def verify_totp(
    code: str,
    seed: str,
    *,
    for_time: Optional[ForTime] = None,
    interval: Optional[int] = None,
    digits: Optional[int] = None,
    valid_window: Optional[int] = None,
) -> bool:
    """
    Check a numeric one-time code against a base32 seed.

    Args:
        code: The code typed by the user; its length selects the digit count
        seed: Base32 TOTP secret
        for_time: Reference time (defaults to now)
        interval: Time step in seconds (defaults to config)
        digits: Force a code length instead of deriving it from ``code``
        valid_window: Preceding steps accepted for clock skew (defaults to config)

    Returns:
        True if the code matches the current or an accepted preceding step

    Raises:
        InvalidSeedError: If the seed is blank or not valid base32
    """
    totp_config = get_config().totp
    interval = interval or totp_config.interval
    valid_window = totp_config.valid_window if valid_window is None else valid_window

    # Seed problems surface even when the code itself is unusable
    candidate = (code or "").strip()
    digits = digits or (len(candidate) if _CODE_PATTERN.match(candidate) else totp_config.digits)
    totp = _build_totp(seed, interval, digits)

    if not _CODE_PATTERN.match(candidate) or len(candidate) != digits:
        return False

    reference = _as_timestamp(for_time)
    matched = False
    for offset in range(0, valid_window + 1):
        expected = totp.at(reference, counter_offset=-offset)
        # Every step is evaluated; no early exit
        matched |= hmac.compare_digest(expected, candidate)
    return matched
