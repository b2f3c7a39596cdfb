# backend/tradeguard/api/routes/security_pin.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from tradeguard.api.deps import get_security_pin_service
from tradeguard.core.errors import PinNotSetError
from tradeguard.core.security import Identity, get_current_identity
from tradeguard.schemas.pin import PinRequest, PinVerifyResult, SetPinAction, VerifyPinAction
from tradeguard.schemas.twofa import ActionResult
from tradeguard.services.security_pin import SecurityPinService

router = APIRouter(prefix="/functions", tags=["pin"])


@router.post("/security-pin")
def security_pin(
    body: PinRequest,
    identity: Identity = Depends(get_current_identity),
    service: SecurityPinService = Depends(get_security_pin_service),
):
    payload = body.root

    if isinstance(payload, SetPinAction):
        service.set_pin(identity, payload.pin)
        return ActionResult(success=True, message="PIN set successfully").model_dump()

    if isinstance(payload, VerifyPinAction):
        try:
            check = service.verify_pin(identity, payload.pin)
        except PinNotSetError as e:
            return ActionResult(success=False, message=e.message).model_dump()
        return PinVerifyResult(
            success=check.success,
            message="PIN verified" if check.success else "Invalid PIN",
            remaining_attempts=check.remaining_attempts,
        ).model_dump(by_alias=True)

    raise TypeError(f"Unhandled PIN action: {type(payload).__name__}")
