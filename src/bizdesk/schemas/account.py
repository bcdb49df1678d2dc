"""Pydantic schemas for accounts and auth flows.

Learn: AccountRead is the ONLY shape an account leaves the service in.
It has no password hash and no reset code, so secrets cannot leak
through a response by accident.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from bizdesk.auth.roles import Role


# ─── Requests ───────────────────────────────────────────

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., pattern=r"^\+?[0-9]{5,20}$")
    password: str = Field(..., min_length=8)
    company_name: Optional[str] = Field(None, max_length=200)
    company_size: Optional[str] = Field(None, max_length=50)
    position: Optional[str] = Field(None, max_length=100)


class LoginRequest(BaseModel):
    identifier: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("identifier", "phone", "email"),
    )
    password: str


class GoogleLoginRequest(BaseModel):
    credential: str = Field(..., description="Google ID token from the sign-in flow")


class ResetCodeRequest(BaseModel):
    identifier: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("identifier", "phone", "email")
    )


class ResetPasswordRequest(BaseModel):
    identifier: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("identifier", "phone", "email")
    )
    code: str
    new_password: str = Field(..., min_length=8)


class ProfileUpdate(BaseModel):
    """Writable profile fields. Identifiers, password and role are not here."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    company_name: Optional[str] = Field(None, max_length=200)
    company_size: Optional[str] = Field(None, max_length=50)
    position: Optional[str] = Field(None, max_length=100)
    results: Optional[dict[str, Any]] = None
    okrs_data: Optional[dict[str, Any]] = None
    calendar_events: Optional[list[Any]] = None
    pomodoro_stats: Optional[dict[str, Any]] = None

    @field_validator(
        "name", "results", "okrs_data", "calendar_events", "pomodoro_stats",
        mode="before",
    )
    @classmethod
    def _not_null(cls, value):
        # Omit a field to leave it unchanged; these columns are NOT NULL.
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


# ─── Responses ──────────────────────────────────────────

class AccountSummary(BaseModel):
    """Admin listing view — no profile payload."""

    id: uuid.UUID
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    role: Role
    company_name: Optional[str] = None
    company_size: Optional[str] = None
    position: Optional[str] = None
    subscription_tier: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AccountRead(AccountSummary):
    results: dict[str, Any] = Field(default_factory=dict)
    okrs_data: dict[str, Any] = Field(default_factory=dict)
    calendar_events: list[Any] = Field(default_factory=list)
    pomodoro_stats: dict[str, Any] = Field(default_factory=dict)


class AuthResponse(BaseModel):
    account: AccountRead
    token: str
    token_type: str = "bearer"


class MessageResponse(BaseModel):
    message: str
