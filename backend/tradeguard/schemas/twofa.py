# backend/tradeguard/schemas/twofa.py
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel


class SetupAction(BaseModel):
    action: Literal["setup"]


class VerifyAction(BaseModel):
    action: Literal["verify"]
    # Any JSON value is accepted: a malformed token must still cost an attempt
    token: Any = ""


class ValidateAction(BaseModel):
    action: Literal["validate"]
    token: Any = ""


class DisableAction(BaseModel):
    action: Literal["disable"]


class TwoFactorRequest(RootModel):
    root: Annotated[
        Union[SetupAction, VerifyAction, ValidateAction, DisableAction],
        Field(discriminator="action"),
    ]


class TwoFASetupResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    secret: str
    qr_code_url: str = Field(serialization_alias="qrCodeUrl")


class ActionResult(BaseModel):
    success: bool
    message: str


class LockedOutResponse(BaseModel):
    error: str
    locked: bool = True


class SecuritySettingsOut(BaseModel):
    pin_enabled: bool = False
    two_factor_enabled: bool = False
    two_factor_method: str | None = None
