"""
Error taxonomy for the security actions (2FA, PIN).

Wrong or malformed codes are not errors: they are a failed verification and
are answered with ``{"success": false}``. Everything here interrupts an
action before or instead of a verification.
"""
from __future__ import annotations

LOCKOUT_MESSAGE = "Too many failed attempts. Please try again in {minutes} minutes."


class SecurityActionError(Exception):
    """Base class for recoverable security-action failures."""

    message = "Security action failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class NotSetUpError(SecurityActionError):
    message = "No 2FA secret found"


class NotEnabledError(SecurityActionError):
    message = "2FA not enabled"


class PinNotSetError(SecurityActionError):
    message = "No PIN set"


class LockedOutError(SecurityActionError):
    def __init__(self, lockout_minutes: int):
        super().__init__(LOCKOUT_MESSAGE.format(minutes=lockout_minutes))
        self.lockout_minutes = lockout_minutes


class RandomSourceUnavailableError(SecurityActionError):
    message = "Secure random source unavailable"
