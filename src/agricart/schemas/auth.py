"""Authentication and lockout-check schemas."""

from typing import Literal

from pydantic import AliasChoices, BaseModel, Field

Portal = Literal["customer", "admin", "member", "logistic"]


class LoginRequest(BaseModel):
    """Credentials for one of the login portals.

    Members sign in with their member identifier; everyone else with email.
    """

    identifier: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("identifier", "email", "member_identifier"),
    )
    password: str = Field(..., min_length=1)
    portal: Portal = "customer"


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_type: str


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    contact_number: str | None = None


class LockoutCheckRequest(BaseModel):
    identifier: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("identifier", "email", "member_identifier"),
    )


class LockoutCheckResponse(BaseModel):
    locked: bool
    failed_attempts: int
    lock_level: int
    remaining_time: int
    lock_expires_at: str | None
    server_time: str
    formatted_time: str | None
