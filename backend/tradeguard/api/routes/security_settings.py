# backend/tradeguard/api/routes/security_settings.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tradeguard.core.security import Identity, get_current_identity
from tradeguard.crud.security_settings import get_by_user_id
from tradeguard.db.session import get_db
from tradeguard.schemas.twofa import SecuritySettingsOut

router = APIRouter(tags=["security"])


@router.get("/security-settings", response_model=SecuritySettingsOut)
def read_security_settings(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Feature flags only; the secret and PIN hash never leave the service."""
    row = get_by_user_id(db, identity.user_id)
    if row is None:
        return SecuritySettingsOut()
    return SecuritySettingsOut(
        pin_enabled=row.pin_enabled,
        two_factor_enabled=row.two_factor_enabled,
        two_factor_method=row.two_factor_method,
    )
