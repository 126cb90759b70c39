from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

TURNSTILE_FIELD = "cf-turnstile-response"


class WaitlistRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    email: StrictStr = Field(min_length=1)
    turnstile_token: str | None = Field(default=None, alias=TURNSTILE_FIELD)

    @field_validator("turnstile_token", mode="before")
    @classmethod
    def discard_non_text_token(cls, value: Any) -> str | None:
        if not isinstance(value, str) or not value:
            return None
        return value


class WaitlistSuccess(BaseModel):
    success: Literal[True] = True
    message: str


class WaitlistError(BaseModel):
    success: Literal[False] = False
    error: str


class VerificationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    error_codes: list[str] = Field(default_factory=list, alias="error-codes")
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)


class NewWaitlistEntry(BaseModel):
    email: str
    ip_address: str
    user_agent: str
    referrer: str | None = None
    country: str | None = None
