# backend/tradeguard/services/security_pin.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from tradeguard.core.errors import LockedOutError, PinNotSetError
from tradeguard.core.security import Identity, hash_pin, verify_pin
from tradeguard.crud import security_settings as crud
from tradeguard.security.rate_limit import AttemptTracker, Clock, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PinCheck:
    success: bool
    remaining_attempts: int


def attempt_key(user_id: str) -> str:
    return f"pin:{user_id}"


class SecurityPinService:
    """Argon2-hashed 4-digit PIN, under the same lockout policy as 2FA."""

    def __init__(self, db: Session, tracker: AttemptTracker, clock: Clock = utcnow):
        self.db = db
        self.tracker = tracker
        self.clock = clock

    def set_pin(self, identity: Identity, pin: str) -> None:
        key = attempt_key(identity.user_id)
        self._ensure_allowed(identity, key)

        crud.store_pin_hash(self.db, identity.user_id, hash_pin(pin), self.clock().replace(tzinfo=None))
        self.tracker.record_success(key)
        logger.info("PIN set successfully for user %s", identity.user_id)

    def verify_pin(self, identity: Identity, pin: str) -> PinCheck:
        key = attempt_key(identity.user_id)
        self._ensure_allowed(identity, key)

        row = crud.get_by_user_id(self.db, identity.user_id)
        if row is None or not row.pin_hash:
            logger.info("PIN verify for user %s: not_set_up", identity.user_id)
            raise PinNotSetError()

        try:
            state = self.tracker.charge(key)
        except LockedOutError:
            logger.warning("PIN attempt for user %s: locked", identity.user_id)
            raise

        if verify_pin(pin, row.pin_hash):
            self.tracker.record_success(key)
            logger.info("PIN verify for user %s: success", identity.user_id)
            return PinCheck(success=True, remaining_attempts=self.tracker.max_attempts)

        logger.info("PIN verify for user %s: invalid (failures=%d)", identity.user_id, state.failed_count)
        return PinCheck(success=False, remaining_attempts=max(self.tracker.max_attempts - state.failed_count, 0))

    def _ensure_allowed(self, identity: Identity, key: str):
        try:
            return self.tracker.ensure_allowed(key)
        except LockedOutError:
            logger.warning("PIN attempt for user %s: locked", identity.user_id)
            raise
