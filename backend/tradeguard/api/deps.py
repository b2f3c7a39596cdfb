# backend/tradeguard/api/deps.py
from fastapi import Depends
from sqlalchemy.orm import Session

from tradeguard.db.session import get_db
from tradeguard.security.rate_limit import AttemptTracker, Clock, get_attempt_tracker, utcnow
from tradeguard.services.security_pin import SecurityPinService
from tradeguard.services.two_factor import TwoFactorService


def get_clock() -> Clock:
    return utcnow


def get_two_factor_service(
    db: Session = Depends(get_db),
    tracker: AttemptTracker = Depends(get_attempt_tracker),
    clock: Clock = Depends(get_clock),
) -> TwoFactorService:
    return TwoFactorService(db, tracker, clock=clock)


def get_security_pin_service(
    db: Session = Depends(get_db),
    tracker: AttemptTracker = Depends(get_attempt_tracker),
    clock: Clock = Depends(get_clock),
) -> SecurityPinService:
    return SecurityPinService(db, tracker, clock=clock)
