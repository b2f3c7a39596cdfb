# backend/tradeguard/schemas/pin.py
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel

PIN_PATTERN = r"^[0-9]{4}$"


class SetPinAction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    action: Literal["set"]
    pin: str = Field(pattern=PIN_PATTERN, description="4-digit PIN")


class VerifyPinAction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    action: Literal["verify"]
    # Any shape is accepted so that probing still costs an attempt
    pin: str = Field(default="", max_length=64)


class PinRequest(RootModel):
    root: Annotated[
        Union[SetPinAction, VerifyPinAction],
        Field(discriminator="action"),
    ]


class PinVerifyResult(BaseModel):
    success: bool
    message: str
    remaining_attempts: int = Field(serialization_alias="remainingAttempts")
