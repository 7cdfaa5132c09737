"""Authentication endpoints for the AgriCart API."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, status
from sqlalchemy.orm import Session

from agricart.api.v1.dependencies import SessionDep, client_ip, lockout_http_exception
from agricart.core.security import create_access_token, hash_password, verify_password
from agricart.models import User, UserType
from agricart.schemas.auth import LoginRequest, LoginResponse, RegisterRequest
from agricart.schemas.profile import ProfileResponse
from agricart.services import price_review
from agricart.services.lockout import AccountLockedError, LoginLockoutService, format_remaining

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

# Account types allowed through each login portal.
PORTAL_USER_TYPES: dict[str, frozenset[str]] = {
    "customer": frozenset({UserType.CUSTOMER}),
    "admin": frozenset({UserType.ADMIN, UserType.STAFF}),
    "member": frozenset({UserType.MEMBER}),
    "logistic": frozenset({UserType.LOGISTIC}),
}


def _lockout_detail(message: str, lockout: dict[str, Any]) -> dict[str, Any]:
    detail: dict[str, Any] = {"message": message, "lockout": lockout}
    if lockout["is_locked"]:
        detail["formatted_time"] = format_remaining(lockout["remaining_time"])
    return detail


def _find_account(db: Session, portal: str, identifier: str) -> User | None:
    if portal == "member":
        return db.query(User).filter(User.member_identifier == identifier).first()
    return db.query(User).filter(User.email == identifier.strip().lower()).first()


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, request: Request, db: SessionDep) -> LoginResponse:
    """Authenticate against one portal and issue an access token.

    Failed attempts are counted per identifier, portal, and client IP. Once
    the threshold is reached further attempts are refused with 429 until the
    lock expires.
    """
    ip_address = client_ip(request)
    identifier = body.identifier.strip()
    lockouts = LoginLockoutService(db)

    try:
        lockouts.check_login_allowed(identifier, body.portal, ip_address)
    except AccountLockedError as err:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=_lockout_detail(str(err), err.status),
        ) from err

    user = _find_account(db, body.portal, identifier)
    if (
        user is None
        or user.type not in PORTAL_USER_TYPES[body.portal]
        or not verify_password(body.password, user.password_hash)
    ):
        lockout = lockouts.record_failed_attempt(identifier, body.portal, ip_address)
        if lockout["is_locked"]:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=_lockout_detail(
                    "Too many failed attempts. Please try again later.", lockout
                ),
            )
        detail = _lockout_detail("These credentials do not match our records.", lockout)
        detail["attempts_remaining"] = lockout["attempts_remaining"]
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

    if not user.active:
        logger.info("Login refused for deactivated account %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been deactivated.",
        )

    if user.type == UserType.CUSTOMER:
        info = price_review.customer_lockout_info(db)
        if info is not None:
            raise lockout_http_exception(info)

    lockouts.clear_failed_attempts(identifier, body.portal, ip_address)
    logger.info("User %s logged in through %s portal", user.id, body.portal)
    return LoginResponse(
        access_token=create_access_token(user.id, user.type),
        user_type=user.type,
    )


@router.post("/register", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: SessionDep) -> User:
    """Create a customer account."""
    email = body.email.strip().lower()
    if db.query(User.id).filter(User.email == email).first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This email is already registered.",
        )
    user = User(
        type=UserType.CUSTOMER,
        name=body.name,
        email=email,
        contact_number=body.contact_number,
        password_hash=hash_password(body.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered customer %s", user.id)
    return user
