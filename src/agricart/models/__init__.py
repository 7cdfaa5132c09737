"""SQLAlchemy models for the AgriCart application."""

from .address import UserAddress
from .catalog import Order, OrderItem, OrderStatus, Product, ProductUnit, Stock
from .lockout import CheckoutRateLimit, LoginAttempt
from .notification import Notification
from .otp import OtpChannel, OtpRequest
from .system import (
    AdminAction,
    PriceChangeStatus,
    StatusValue,
    SystemSchedule,
    SystemStatus,
    SystemTracking,
    TrackingStatus,
)
from .user import ADMIN_TYPES, User, UserType

__all__ = [
    "UserAddress",
    "Order", "OrderItem", "OrderStatus", "Product", "ProductUnit", "Stock",
    "CheckoutRateLimit", "LoginAttempt",
    "Notification",
    "OtpChannel", "OtpRequest",
    "AdminAction", "PriceChangeStatus", "StatusValue",
    "SystemSchedule", "SystemStatus", "SystemTracking", "TrackingStatus",
    "ADMIN_TYPES", "User", "UserType",
]
