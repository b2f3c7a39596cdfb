# backend/tradeguard/security/twofa.py
from __future__ import annotations

import logging
import re
from datetime import datetime

import pyotp
from pyotp.utils import strings_equal

from tradeguard.core.errors import RandomSourceUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_ISSUER = "TradingApp"
CODE_DIGITS = 6
DEFAULT_STEP_SECONDS = 30
DEFAULT_WINDOW_STEPS = 1

# 32 base32 characters carry 160 bits, the size of an HMAC-SHA1 key
SECRET_LENGTH = 32

_CODE_RE = re.compile(r"[0-9]{%d}" % CODE_DIGITS)


def generate_secret() -> str:
    """
    Fresh shared secret, unpadded base32 (A-Z, 2-7).

    Drawn from the OS CSPRNG; if that is unavailable the call fails rather
    than using a weaker generator.
    """
    try:
        return pyotp.random_base32(length=SECRET_LENGTH)
    except (NotImplementedError, OSError) as exc:
        logger.error("2FA secret generation failed: random source unavailable")
        raise RandomSourceUnavailableError() from exc


def hotp(secret: str, counter: int) -> str:
    """RFC 4226 HOTP: HMAC-SHA1, dynamic truncation, 6 zero-padded digits."""
    return pyotp.HOTP(secret, digits=CODE_DIGITS).at(counter)


def time_counter(now: datetime, step_seconds: int = DEFAULT_STEP_SECONDS) -> int:
    return int(now.timestamp()) // step_seconds


def is_well_formed(code) -> bool:
    return isinstance(code, str) and _CODE_RE.fullmatch(code) is not None


def verify_totp(
    secret: str,
    code: str,
    now: datetime,
    step_seconds: int = DEFAULT_STEP_SECONDS,
    window_steps: int = DEFAULT_WINDOW_STEPS,
) -> bool:
    """
    Check ``code`` against the counters ``base - window .. base + window``.

    Malformed input is rejected before any comparison. Each candidate is
    compared in constant time; counters before the epoch are skipped.
    """
    if not is_well_formed(code):
        return False

    base = time_counter(now, step_seconds)
    for delta in range(-window_steps, window_steps + 1):
        counter = base + delta
        if counter < 0:
            continue
        if strings_equal(hotp(secret, counter), code):
            return True
    return False


def build_totp_uri(secret: str, account_label: str, issuer: str = DEFAULT_ISSUER) -> str:
    totp = pyotp.TOTP(secret)
    return totp.provisioning_uri(name=account_label, issuer_name=issuer)
