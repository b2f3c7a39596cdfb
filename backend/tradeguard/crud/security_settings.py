# backend/tradeguard/crud/security_settings.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from tradeguard.models.security_settings import SecuritySettings

AUTHENTICATOR_METHOD = "authenticator"


def get_by_user_id(db: Session, user_id: str) -> SecuritySettings | None:
    stmt = select(SecuritySettings).where(SecuritySettings.user_id == user_id)
    return db.execute(stmt).scalar_one_or_none()


def get_or_create(db: Session, user_id: str) -> SecuritySettings:
    row = get_by_user_id(db, user_id)
    if row is None:
        row = SecuritySettings(user_id=user_id, two_factor_enabled=False, pin_enabled=False)
        db.add(row)
    return row


def store_pending_secret(db: Session, user_id: str, secret: str) -> SecuritySettings:
    """Replace any previous secret; 2FA stays off until a code is verified."""
    row = get_or_create(db, user_id)
    row.two_factor_secret = secret
    row.two_factor_enabled = False

    db.commit()
    db.refresh(row)
    return row


def enable_two_factor(db: Session, row: SecuritySettings) -> SecuritySettings:
    row.two_factor_enabled = True
    row.two_factor_method = AUTHENTICATOR_METHOD

    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def clear_two_factor(db: Session, user_id: str) -> SecuritySettings | None:
    row = get_by_user_id(db, user_id)
    if row is None:
        return None

    row.two_factor_secret = None
    row.two_factor_enabled = False
    row.two_factor_method = None

    db.commit()
    db.refresh(row)
    return row


def store_pin_hash(db: Session, user_id: str, pin_hash: str, changed_at: datetime) -> SecuritySettings:
    row = get_or_create(db, user_id)
    row.pin_hash = pin_hash
    row.pin_enabled = True
    row.last_pin_change = changed_at

    db.commit()
    db.refresh(row)
    return row
