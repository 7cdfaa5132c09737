"""Customer profile, address book, and contact-change endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Response, status

from agricart.api.v1.dependencies import AccessibleCustomerDep, SessionDep
from agricart.core.security import hash_password, verify_password
from agricart.core.settings import settings
from agricart.models import OtpChannel, User, UserAddress
from agricart.schemas.profile import (
    AddressCreateRequest,
    AddressResponse,
    AddressUpdateRequest,
    CurrentAddressResponse,
    EmailChangeRequest,
    OtpRequestResponse,
    OtpSentResponse,
    OtpVerifyRequest,
    PasswordChangeRequest,
    PhoneChangeRequest,
    ProfileResponse,
    ProfileUpdateRequest,
)
from agricart.services import addresses, otp
from agricart.services.addresses import AddressNotFoundError
from agricart.services.otp import IssuedOtp, OtpError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customer/profile", tags=["profile"])


def _address_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Address not found")


def _otp_error(err: OtpError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": str(err), "field": err.field},
    )


def _sent(issued: IssuedOtp, message: str) -> OtpSentResponse:
    request = issued.request
    return OtpSentResponse(
        message=message,
        otp_request=OtpRequestResponse(
            id=request.id,
            target=request.new_value,
            expires_at=request.expires_at,
            otp=issued.code if settings.debug else None,
        ),
    )


# --- Profile ---------------------------------------------------------------------


@router.get("", response_model=ProfileResponse)
async def get_profile(user: AccessibleCustomerDep) -> User:
    return user


@router.put("", response_model=ProfileResponse)
async def update_profile(
    body: ProfileUpdateRequest, db: SessionDep, user: AccessibleCustomerDep
) -> User:
    if body.name is not None:
        user.name = body.name
    if body.contact_number is not None:
        try:
            user.contact_number = otp.normalize_phone(body.contact_number)
        except OtpError as err:
            raise _otp_error(err) from err
    db.commit()
    db.refresh(user)
    return user


@router.post("/change-password")
async def change_password(
    body: PasswordChangeRequest, db: SessionDep, user: AccessibleCustomerDep
) -> dict[str, str]:
    """Replace the password after confirming the current one."""
    if not verify_password(body.current_password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "The current password is incorrect.", "field": "current_password"},
        )
    user.password_hash = hash_password(body.new_password)
    db.commit()
    logger.info("User %s changed password", user.id)
    return {"message": "Password updated successfully."}


# --- Addresses -------------------------------------------------------------------


@router.get("/addresses", response_model=list[AddressResponse])
async def list_addresses(db: SessionDep, user: AccessibleCustomerDep) -> list[UserAddress]:
    return list(addresses.list_addresses(db, user.id))


@router.post(
    "/addresses",
    response_model=AddressResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_address(
    body: AddressCreateRequest, db: SessionDep, user: AccessibleCustomerDep
) -> UserAddress:
    return addresses.create_address(db, user.id, body.model_dump())


@router.get("/current-address", response_model=CurrentAddressResponse)
async def current_address(db: SessionDep, user: AccessibleCustomerDep) -> CurrentAddressResponse:
    default = addresses.get_default_address(db, user.id)
    return CurrentAddressResponse(
        default_address=AddressResponse.model_validate(default) if default else None
    )


@router.get("/addresses/{address_id}", response_model=AddressResponse)
async def get_address(
    address_id: int, db: SessionDep, user: AccessibleCustomerDep
) -> UserAddress:
    try:
        return addresses.get_address(db, user.id, address_id)
    except AddressNotFoundError as err:
        raise _address_not_found() from err


@router.put("/addresses/{address_id}", response_model=AddressResponse)
async def update_address(
    address_id: int,
    body: AddressUpdateRequest,
    db: SessionDep,
    user: AccessibleCustomerDep,
) -> UserAddress:
    try:
        return addresses.update_address(
            db, user.id, address_id, body.model_dump(exclude_unset=True)
        )
    except AddressNotFoundError as err:
        raise _address_not_found() from err


@router.post("/addresses/{address_id}/set-default", response_model=AddressResponse)
async def set_default_address(
    address_id: int, db: SessionDep, user: AccessibleCustomerDep
) -> UserAddress:
    try:
        return addresses.set_default(db, user.id, address_id)
    except AddressNotFoundError as err:
        raise _address_not_found() from err


@router.delete("/addresses/{address_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_address(
    address_id: int, db: SessionDep, user: AccessibleCustomerDep
) -> Response:
    try:
        addresses.delete_address(db, user.id, address_id)
    except AddressNotFoundError as err:
        raise _address_not_found() from err
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Email and phone changes -------------------------------------------------------


@router.post("/email-change/send-otp", response_model=OtpSentResponse)
async def send_email_otp(
    body: EmailChangeRequest, db: SessionDep, user: AccessibleCustomerDep
) -> OtpSentResponse:
    try:
        issued = otp.request_change(db, user, OtpChannel.EMAIL, body.new_email)
    except OtpError as err:
        raise _otp_error(err) from err
    return _sent(issued, "A verification code was sent to your new email address.")


@router.post("/phone-change/send-otp", response_model=OtpSentResponse)
async def send_phone_otp(
    body: PhoneChangeRequest, db: SessionDep, user: AccessibleCustomerDep
) -> OtpSentResponse:
    try:
        issued = otp.request_change(db, user, OtpChannel.PHONE, body.new_phone)
    except OtpError as err:
        raise _otp_error(err) from err
    return _sent(issued, "A verification code was sent to your new phone number.")


@router.post("/{channel}-change/verify/{request_id}", response_model=ProfileResponse)
async def verify_change(
    channel: OtpChannel,
    request_id: int,
    body: OtpVerifyRequest,
    db: SessionDep,
    user: AccessibleCustomerDep,
) -> User:
    try:
        return otp.verify_change(db, user, channel, request_id, body.otp)
    except OtpError as err:
        raise _otp_error(err) from err


@router.post("/{channel}-change/resend/{request_id}", response_model=OtpSentResponse)
async def resend_code(
    channel: OtpChannel,
    request_id: int,
    db: SessionDep,
    user: AccessibleCustomerDep,
) -> OtpSentResponse:
    try:
        issued = otp.resend(db, user, channel, request_id)
    except OtpError as err:
        raise _otp_error(err) from err
    return _sent(issued, "A new verification code was sent.")


@router.post("/{channel}-change/cancel/{request_id}")
async def cancel_change(
    channel: OtpChannel,
    request_id: int,
    db: SessionDep,
    user: AccessibleCustomerDep,
) -> dict[str, str]:
    try:
        otp.cancel(db, user, channel, request_id)
    except OtpError as err:
        raise _otp_error(err) from err
    return {"message": "Change request cancelled."}
