# backend/tradeguard/services/two_factor.py
"""
Authenticator-app 2FA for one user at a time.

Record states: unset (no secret) -> pending (secret, not enabled) -> enabled,
back to unset through ``disable``. ``setup`` always issues a fresh secret, so
calling it again replaces a pending or enabled one immediately.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from tradeguard.core.config import settings
from tradeguard.core.errors import LockedOutError, NotEnabledError, NotSetUpError
from tradeguard.core.security import Identity
from tradeguard.crud import security_settings as crud
from tradeguard.models.security_settings import SecuritySettings
from tradeguard.security.rate_limit import AttemptTracker, Clock, utcnow
from tradeguard.security.twofa import build_totp_uri, generate_secret, verify_totp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SetupResult:
    secret: str
    provisioning_uri: str


def attempt_key(user_id: str) -> str:
    return f"2fa:{user_id}"


class TwoFactorService:
    def __init__(
        self,
        db: Session,
        tracker: AttemptTracker,
        clock: Clock = utcnow,
        issuer: str | None = None,
        step_seconds: int | None = None,
        window_steps: int | None = None,
    ):
        self.db = db
        self.tracker = tracker
        self.clock = clock
        self.issuer = issuer or settings.TOTP_ISSUER
        self.step_seconds = step_seconds or settings.TOTP_STEP_SECONDS
        self.window_steps = settings.TOTP_WINDOW_STEPS if window_steps is None else window_steps

    def setup(self, identity: Identity) -> SetupResult:
        secret = generate_secret()
        crud.store_pending_secret(self.db, identity.user_id, secret)

        logger.info("2FA setup initiated for user %s", identity.user_id)
        return SetupResult(
            secret=secret,
            provisioning_uri=build_totp_uri(secret, identity.account_label, self.issuer),
        )

    def verify(self, identity: Identity, token) -> bool:
        """Confirm a pending secret and switch 2FA on."""
        key = attempt_key(identity.user_id)
        self._ensure_allowed(identity, key)

        row = crud.get_by_user_id(self.db, identity.user_id)
        if row is None or not row.two_factor_secret:
            logger.info("2FA verify for user %s: not_set_up", identity.user_id)
            raise NotSetUpError()

        if not self._check(row, token, key, identity, "verify"):
            return False

        crud.enable_two_factor(self.db, row)
        logger.info("2FA enabled successfully for user %s", identity.user_id)
        return True

    def validate(self, identity: Identity, token) -> bool:
        """Step-up check against an enabled secret. Never changes the record."""
        key = attempt_key(identity.user_id)
        self._ensure_allowed(identity, key)

        row = crud.get_by_user_id(self.db, identity.user_id)
        if row is None or not row.two_factor_enabled or not row.two_factor_secret:
            logger.info("2FA validate for user %s: not_enabled", identity.user_id)
            raise NotEnabledError()

        return self._check(row, token, key, identity, "validate")

    def disable(self, identity: Identity) -> None:
        crud.clear_two_factor(self.db, identity.user_id)
        logger.info("2FA disabled for user %s", identity.user_id)

    def _ensure_allowed(self, identity: Identity, key: str) -> None:
        try:
            self.tracker.ensure_allowed(key)
        except LockedOutError:
            logger.warning("2FA attempt for user %s: locked", identity.user_id)
            raise

    def _check(self, row: SecuritySettings, token, key: str, identity: Identity, action: str) -> bool:
        # The attempt is charged before the code is evaluated; a match refunds it
        try:
            state = self.tracker.charge(key)
        except LockedOutError:
            logger.warning("2FA %s for user %s: locked", action, identity.user_id)
            raise

        ok = verify_totp(
            row.two_factor_secret,
            token,
            now=self.clock(),
            step_seconds=self.step_seconds,
            window_steps=self.window_steps,
        )
        if ok:
            self.tracker.record_success(key)
            logger.info("2FA %s for user %s: success", action, identity.user_id)
        else:
            logger.info("2FA %s for user %s: invalid (failures=%d)",
                        action, identity.user_id, state.failed_count)
        return ok
