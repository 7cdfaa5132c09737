"""Customer profile, address, and contact-change schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ProfileResponse(BaseModel):
    id: int
    type: str
    name: str
    email: str | None
    contact_number: str | None

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    contact_number: str | None = Field(None, max_length=20)


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)


class AddressCreateRequest(BaseModel):
    street: str = Field(..., min_length=1, max_length=255)
    barangay: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=255)
    province: str = Field(..., min_length=1, max_length=255)
    is_default: bool = False


class AddressUpdateRequest(BaseModel):
    street: str | None = Field(None, min_length=1, max_length=255)
    barangay: str | None = Field(None, min_length=1, max_length=255)
    city: str | None = Field(None, min_length=1, max_length=255)
    province: str | None = Field(None, min_length=1, max_length=255)
    is_default: bool | None = None


class AddressResponse(BaseModel):
    id: int
    street: str
    barangay: str
    city: str
    province: str
    is_default: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CurrentAddressResponse(BaseModel):
    default_address: AddressResponse | None


class EmailChangeRequest(BaseModel):
    new_email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)


class PhoneChangeRequest(BaseModel):
    new_phone: str = Field(..., min_length=10, max_length=20)


class OtpVerifyRequest(BaseModel):
    otp: str = Field(..., pattern=r"^\d{6}$", description="Six-digit verification code")


class OtpRequestResponse(BaseModel):
    id: int
    target: str
    expires_at: datetime
    # Only populated in debug mode.
    otp: str | None = None


class OtpSentResponse(BaseModel):
    success: bool = True
    message: str
    otp_request: OtpRequestResponse
