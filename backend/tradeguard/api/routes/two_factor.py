# backend/tradeguard/api/routes/two_factor.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from tradeguard.api.deps import get_two_factor_service
from tradeguard.core.errors import NotEnabledError, NotSetUpError
from tradeguard.core.security import Identity, get_current_identity
from tradeguard.schemas.twofa import (
    ActionResult,
    DisableAction,
    SetupAction,
    TwoFactorRequest,
    TwoFASetupResponse,
    ValidateAction,
    VerifyAction,
)
from tradeguard.services.two_factor import TwoFactorService

router = APIRouter(prefix="/functions", tags=["2fa"])


@router.post("/two-factor-auth")
def two_factor_auth(
    body: TwoFactorRequest,
    identity: Identity = Depends(get_current_identity),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """
    Single action endpoint: setup | verify | validate | disable.
    Lockouts surface as 429 through the app's exception handler.
    """
    payload = body.root

    if isinstance(payload, SetupAction):
        setup = service.setup(identity)
        return TwoFASetupResponse(
            secret=setup.secret,
            qr_code_url=setup.provisioning_uri,
        ).model_dump(by_alias=True)

    if isinstance(payload, VerifyAction):
        try:
            ok = service.verify(identity, payload.token)
        except NotSetUpError as e:
            return ActionResult(success=False, message=e.message).model_dump()
        message = "2FA enabled successfully" if ok else "Invalid verification code"
        return ActionResult(success=ok, message=message).model_dump()

    if isinstance(payload, ValidateAction):
        try:
            ok = service.validate(identity, payload.token)
        except NotEnabledError as e:
            return ActionResult(success=False, message=e.message).model_dump()
        return ActionResult(success=ok, message="Valid code" if ok else "Invalid code").model_dump()

    if isinstance(payload, DisableAction):
        service.disable(identity)
        return ActionResult(success=True, message="2FA disabled").model_dump()

    raise TypeError(f"Unhandled 2FA action: {type(payload).__name__}")
