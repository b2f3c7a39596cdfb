# backend/tradeguard/models/__init__.py
from .security_settings import SecuritySettings
from .failed_attempt import FailedAttempt

__all__ = ["SecuritySettings", "FailedAttempt"]
