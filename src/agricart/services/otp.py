"""OTP-verified email and phone number changes."""

from __future__ import annotations

import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from agricart.core.settings import settings
from agricart.db.time import as_utc, utcnow
from agricart.models import OtpChannel, OtpRequest, User
from agricart.services import notifications
from agricart.utils.hash import digest_matches, keyed_hexdigest

logger = logging.getLogger(__name__)

OTP_LENGTH = 6
_PH_MOBILE = re.compile(r"^(?:\+63|63|0)?(9\d{9})$")


class OtpError(ValueError):
    """Raised for invalid OTP submissions; `field` names the offending input."""

    def __init__(self, message: str, field: str = "otp") -> None:
        super().__init__(message)
        self.field = field


@dataclass(frozen=True)
class IssuedOtp:
    request: OtpRequest
    code: str


def generate_code() -> str:
    return f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"


def normalize_phone(value: str) -> str:
    """Normalize a Philippine mobile number to ``+639XXXXXXXXX``."""
    compact = re.sub(r"[\s-]", "", value or "")
    match = _PH_MOBILE.match(compact)
    if match is None:
        raise OtpError("Enter a valid mobile number (e.g. 09171234567).", field="new_phone")
    return f"+63{match.group(1)}"


def _label(channel: OtpChannel) -> str:
    return "email" if channel == OtpChannel.EMAIL else "phone number"


def _field(channel: OtpChannel) -> str:
    return "new_email" if channel == OtpChannel.EMAIL else "new_phone"


def _current_value(user: User, channel: OtpChannel) -> str | None:
    return user.email if channel == OtpChannel.EMAIL else user.contact_number


def _normalize(channel: OtpChannel, value: str) -> str:
    if channel == OtpChannel.EMAIL:
        return value.strip().lower()
    return normalize_phone(value)


def _value_taken(db: Session, user: User, channel: OtpChannel, value: str) -> bool:
    query = db.query(User.id).filter(User.id != user.id)
    if channel == OtpChannel.EMAIL:
        query = query.filter(User.email == value)
    else:
        query = query.filter(User.contact_number == value)
    return query.first() is not None


def _deliver(db: Session, user: User, request: OtpRequest, code: str) -> None:
    channel = OtpChannel(request.channel)
    notifications.notify(
        db,
        user.id,
        f"{channel.value}_change_otp",
        f"Your verification code for changing your {_label(channel)} is {code}.",
        {"request_id": request.id, "target": request.new_value},
        commit=False,
    )
    logger.info(
        "Issued %s change OTP request %s for user %s",
        channel.value,
        request.id,
        user.id,
    )


def _store_code(request: OtpRequest, code: str, now: datetime) -> None:
    request.otp_hash = keyed_hexdigest(code)
    request.expires_at = now + timedelta(minutes=settings.otp_expire_minutes)
    request.attempts = 0


def request_change(
    db: Session,
    user: User,
    channel: OtpChannel,
    new_value: str,
    *,
    now: datetime | None = None,
) -> IssuedOtp:
    """Create a change request and send its code.

    Earlier unused requests for the same channel are invalidated.
    """
    now = now or utcnow()
    normalized = _normalize(channel, new_value)
    current = _current_value(user, channel)
    if current is not None and _normalize_current(channel, current) == normalized:
        label = _label(channel)
        raise OtpError(
            f"The new {label} must be different from your current {label}.",
            field=_field(channel),
        )

    if _value_taken(db, user, channel, normalized):
        raise OtpError(f"This {_label(channel)} is already in use.", field=_field(channel))

    db.query(OtpRequest).filter(
        OtpRequest.user_id == user.id,
        OtpRequest.channel == channel,
        OtpRequest.is_used.is_(False),
    ).update({OtpRequest.is_used: True}, synchronize_session=False)

    code = generate_code()
    request = OtpRequest(user_id=user.id, channel=channel, new_value=normalized)
    _store_code(request, code, now)
    db.add(request)
    db.flush()
    _deliver(db, user, request, code)
    db.commit()
    db.refresh(request)
    return IssuedOtp(request=request, code=code)


def _normalize_current(channel: OtpChannel, value: str) -> str | None:
    try:
        return _normalize(channel, value)
    except OtpError:
        return value


def _get_open_request(
    db: Session, user: User, channel: OtpChannel, request_id: int
) -> OtpRequest:
    request = (
        db.query(OtpRequest)
        .filter(
            OtpRequest.id == request_id,
            OtpRequest.user_id == user.id,
            OtpRequest.channel == channel,
            OtpRequest.is_used.is_(False),
        )
        .first()
    )
    if request is None:
        raise OtpError("Invalid or expired verification code.")
    return request


def verify_change(
    db: Session,
    user: User,
    channel: OtpChannel,
    request_id: int,
    code: str,
    *,
    now: datetime | None = None,
) -> User:
    """Check the code and apply the contact change."""
    now = now or utcnow()
    request = _get_open_request(db, user, channel, request_id)

    if as_utc(request.expires_at) <= now:
        raise OtpError("Invalid or expired verification code.")

    if not digest_matches(code, request.otp_hash):
        request.attempts += 1
        if request.attempts >= settings.otp_max_attempts:
            request.is_used = True
            logger.warning(
                "OTP request %s for user %s burned after %d wrong codes",
                request.id,
                user.id,
                request.attempts,
            )
        db.commit()
        raise OtpError("Invalid or expired verification code.")

    if _value_taken(db, user, channel, request.new_value):
        request.is_used = True
        db.commit()
        raise OtpError(f"This {_label(channel)} is already in use.", field=_field(channel))

    if channel == OtpChannel.EMAIL:
        user.email = request.new_value
    else:
        user.contact_number = request.new_value
    request.is_used = True
    notifications.notify(
        db,
        user.id,
        f"{channel.value}_changed",
        f"Your {_label(channel)} was changed to {request.new_value}.",
        commit=False,
    )
    db.commit()
    db.refresh(user)
    logger.info("User %s changed %s via OTP request %s", user.id, channel.value, request.id)
    return user


def resend(
    db: Session,
    user: User,
    channel: OtpChannel,
    request_id: int,
    *,
    now: datetime | None = None,
) -> IssuedOtp:
    """Replace the code on an open request and send it again."""
    now = now or utcnow()
    request = _get_open_request(db, user, channel, request_id)
    code = generate_code()
    _store_code(request, code, now)
    _deliver(db, user, request, code)
    db.commit()
    db.refresh(request)
    return IssuedOtp(request=request, code=code)


def cancel(db: Session, user: User, channel: OtpChannel, request_id: int) -> None:
    request = _get_open_request(db, user, channel, request_id)
    request.is_used = True
    db.commit()
    logger.info("User %s cancelled %s change request %s", user.id, channel.value, request.id)
