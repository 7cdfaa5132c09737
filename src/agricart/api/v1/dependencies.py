"""Shared API dependencies for authentication and customer access."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from agricart.core.security import decode_access_token
from agricart.core.settings import settings
from agricart.db.session import get_db
from agricart.models import User, UserType
from agricart.services import price_review

# Width of login_attempts.ip_address
MAX_ADDRESS_LENGTH = 45

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def client_ip(request: Request) -> str:
    """Client address used to key lockouts and throttles.

    `X-Forwarded-For` is only honoured when the direct peer is listed in
    ``TRUSTED_PROXIES``; the nearest hop not itself a trusted proxy wins.
    """
    peer = request.client.host if request.client is not None else "unknown"
    trusted = set(settings.trusted_proxies)
    if peer not in trusted:
        return peer

    forwarded = request.headers.get("x-forwarded-for", "")
    for hop in reversed([part.strip() for part in forwarded.split(",")]):
        if hop and hop not in trusted:
            return hop[:MAX_ADDRESS_LENGTH]
    return peer


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        HTTPException: If token is invalid, the user is missing, or deactivated
    """
    try:
        user_id = decode_access_token(credentials.credentials)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    if not user.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been deactivated.",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def require_admin(user: CurrentUserDep) -> User:
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return user


def require_customer(user: CurrentUserDep) -> User:
    if user.type != UserType.CUSTOMER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Customer access required",
        )
    return user


AdminDep = Annotated[User, Depends(require_admin)]
CustomerDep = Annotated[User, Depends(require_customer)]


def lockout_http_exception(info: dict) -> HTTPException:
    """Build the 423 response served while customer access is blocked."""
    return HTTPException(
        status_code=status.HTTP_423_LOCKED,
        detail={
            "message": info["message"],
            "lockout_status": "active",
            "lockout_type": info["type"],
            "lockout_details": info,
        },
    )


def ensure_customer_access(user: CustomerDep, db: SessionDep) -> User:
    """Refuse customer routes while the system is locked for price review."""
    info = price_review.customer_lockout_info(db)
    if info is not None:
        raise lockout_http_exception(info)
    return user


AccessibleCustomerDep = Annotated[User, Depends(ensure_customer_access)]
