"""Customer address book with a single default address per user."""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy.orm import Session

from agricart.models import UserAddress

ADDRESS_FIELDS = ("street", "barangay", "city", "province")


class AddressNotFoundError(LookupError):
    """Raised when an address does not exist or belongs to another user."""


def list_addresses(db: Session, user_id: int) -> Sequence[UserAddress]:
    """Return a user's addresses, default first then newest."""
    return (
        db.query(UserAddress)
        .filter(UserAddress.user_id == user_id)
        .order_by(
            UserAddress.is_default.desc(),
            UserAddress.created_at.desc(),
            UserAddress.id.desc(),
        )
        .all()
    )


def get_address(db: Session, user_id: int, address_id: int) -> UserAddress:
    address = (
        db.query(UserAddress)
        .filter(UserAddress.id == address_id, UserAddress.user_id == user_id)
        .first()
    )
    if address is None:
        raise AddressNotFoundError(address_id)
    return address


def get_default_address(db: Session, user_id: int) -> UserAddress | None:
    return (
        db.query(UserAddress)
        .filter(UserAddress.user_id == user_id, UserAddress.is_default.is_(True))
        .first()
    )


def _clear_default(db: Session, user_id: int, keep_id: int | None = None) -> None:
    query = db.query(UserAddress).filter(
        UserAddress.user_id == user_id, UserAddress.is_default.is_(True)
    )
    if keep_id is not None:
        query = query.filter(UserAddress.id != keep_id)
    query.update({UserAddress.is_default: False}, synchronize_session="fetch")


def create_address(db: Session, user_id: int, data: Mapping[str, Any]) -> UserAddress:
    """Add an address; the first one, or one flagged `is_default`, becomes the default."""
    has_addresses = (
        db.query(UserAddress.id).filter(UserAddress.user_id == user_id).first() is not None
    )
    make_default = bool(data.get("is_default")) or not has_addresses
    if make_default:
        _clear_default(db, user_id)

    address = UserAddress(
        user_id=user_id,
        is_default=make_default,
        **{field: data[field] for field in ADDRESS_FIELDS},
    )
    db.add(address)
    db.commit()
    db.refresh(address)
    return address


def update_address(
    db: Session, user_id: int, address_id: int, data: Mapping[str, Any]
) -> UserAddress:
    address = get_address(db, user_id, address_id)
    for field in ADDRESS_FIELDS:
        if data.get(field) is not None:
            setattr(address, field, data[field])
    if data.get("is_default"):
        _clear_default(db, user_id, keep_id=address.id)
        address.is_default = True
    db.commit()
    db.refresh(address)
    return address


def set_default(db: Session, user_id: int, address_id: int) -> UserAddress:
    address = get_address(db, user_id, address_id)
    _clear_default(db, user_id, keep_id=address.id)
    address.is_default = True
    db.commit()
    db.refresh(address)
    return address


def delete_address(db: Session, user_id: int, address_id: int) -> None:
    """Delete an address, promoting the newest remaining one if it was the default."""
    address = get_address(db, user_id, address_id)
    was_default = address.is_default
    db.delete(address)
    db.flush()

    if was_default:
        successor = (
            db.query(UserAddress)
            .filter(UserAddress.user_id == user_id)
            .order_by(UserAddress.created_at.desc(), UserAddress.id.desc())
            .first()
        )
        if successor is not None:
            successor.is_default = True
    db.commit()
