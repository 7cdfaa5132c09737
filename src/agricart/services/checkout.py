"""Catalogue queries, admin pricing, and customer checkout."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from agricart.core.settings import settings
from agricart.db.time import utcnow
from agricart.models import Order, OrderItem, Product, ProductUnit, Stock, User
from agricart.services import addresses, notifications, price_review

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
MAX_QUANTITY = Decimal("99999999.99")


class CheckoutError(ValueError):
    """Raised when a checkout cannot be completed."""


class PriceChangeNotAllowedError(RuntimeError):
    """Raised when prices are edited outside a price-change window."""


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: Decimal


def available_quantity(product: Product) -> Decimal:
    return sum((stock.available for stock in product.stocks), Decimal("0"))


def list_products(db: Session) -> Sequence[Product]:
    """Return unarchived products."""
    return (
        db.query(Product)
        .filter(Product.archived_at.is_(None))
        .order_by(Product.name)
        .all()
    )


def create_product(db: Session, name: str, unit: ProductUnit, price: Decimal) -> Product:
    product = Product(name=name, unit=unit, price=Decimal(price).quantize(CENTS))
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def add_stock(db: Session, product_id: int, member: User, quantity: Decimal) -> Stock:
    product = db.get(Product, product_id)
    if product is None or product.archived_at is not None:
        raise CheckoutError("Product not found.")
    stock = Stock(product_id=product.id, member_id=member.id, quantity=quantity, sold_quantity=0)
    db.add(stock)
    db.commit()
    db.refresh(stock)
    return stock


def update_price(db: Session, admin: User, product_id: int, price: Decimal) -> Product:
    """Change a product price; only allowed while a price change is pending."""
    if not price_review.is_price_change_window_open(db):
        raise PriceChangeNotAllowedError(
            "Prices can only be changed while a price change is pending."
        )
    product = db.get(Product, product_id)
    if product is None:
        raise CheckoutError("Product not found.")
    old_price = product.price
    product.price = Decimal(price).quantize(CENTS)
    db.commit()
    db.refresh(product)
    logger.info(
        "Admin %s changed price of product %s from %s to %s",
        admin.id,
        product.id,
        old_price,
        product.price,
    )
    return product


def _validate_quantity(product: Product, quantity: Decimal) -> None:
    if not quantity.is_finite() or quantity <= 0:
        raise CheckoutError(f"Quantity for {product.name} must be greater than zero.")
    if quantity > MAX_QUANTITY:
        raise CheckoutError(f"Quantity for {product.name} is too large.")
    if product.unit == ProductUnit.KILO:
        if quantity != quantity.quantize(CENTS):
            raise CheckoutError("Kilo quantity must have maximum 2 decimal places.")
    elif quantity != quantity.to_integral_value():
        raise CheckoutError("Quantity must be a whole number for this category.")


def _allocate(db: Session, product: Product, quantity: Decimal) -> list[tuple[Stock, Decimal]]:
    stocks = (
        db.query(Stock)
        .filter(Stock.product_id == product.id)
        .order_by(Stock.created_at, Stock.id)
        .all()
    )
    total_available = sum((stock.available for stock in stocks), Decimal("0"))
    if total_available < quantity:
        raise CheckoutError(
            f"Not enough stock available for {product.name}. "
            f"Maximum available: {total_available} {product.unit}"
        )

    allocations: list[tuple[Stock, Decimal]] = []
    remaining = quantity
    for stock in stocks:
        if remaining <= 0:
            break
        take = min(stock.available, remaining)
        if take <= 0:
            continue
        allocations.append((stock, take))
        remaining -= take
    return allocations


def checkout(
    db: Session,
    customer: User,
    lines: Sequence[CartLine],
    address_id: int | None = None,
) -> Order:
    """Create an order from cart lines, drawing stock oldest first.

    Raises:
        CheckoutError: On an empty cart, a missing address, invalid quantities,
            insufficient stock, or a total below the minimum order.
    """
    if not lines:
        raise CheckoutError("Your cart is empty.")

    if address_id is not None:
        try:
            address = addresses.get_address(db, customer.id, address_id)
        except addresses.AddressNotFoundError as err:
            raise CheckoutError("Invalid delivery address selected.") from err
    else:
        address = addresses.get_default_address(db, customer.id)
        if address is None:
            raise CheckoutError("No default address found. Please set a default address first.")

    # Lines for the same product are merged so stock is allocated once.
    merged: dict[int, Decimal] = {}
    for line in lines:
        merged[line.product_id] = merged.get(line.product_id, Decimal("0")) + Decimal(
            line.quantity
        )

    order = Order(customer_id=customer.id, address_id=address.id, total_amount=Decimal("0"))
    total = Decimal("0")
    allocations: list[tuple[Product, Stock, Decimal]] = []
    for product_id, quantity in merged.items():
        product = db.get(Product, product_id)
        if product is None or product.archived_at is not None:
            raise CheckoutError(f"Product {product_id} is no longer available.")
        _validate_quantity(product, quantity)
        for stock, take in _allocate(db, product, quantity):
            allocations.append((product, stock, take))
        total += (Decimal(product.price) * quantity).quantize(CENTS, rounding=ROUND_HALF_UP)

    if total < Decimal(str(settings.min_order_total)):
        raise CheckoutError(
            f"Minimum order requirement is Php{settings.min_order_total:.2f}. "
            f"Your current total is Php{total:.2f}. Please add more items to your cart."
        )

    for product, stock, take in allocations:
        stock.sold_quantity = Decimal(stock.sold_quantity or 0) + take
        order.items.append(
            OrderItem(
                product_id=product.id,
                stock_id=stock.id,
                quantity=take,
                unit_price=product.price,
            )
        )
    order.total_amount = total
    order.created_at = utcnow()
    db.add(order)
    db.flush()
    notifications.notify(
        db,
        customer.id,
        "order_confirmation",
        f"Your order #{order.id} totalling Php{total:.2f} was placed.",
        {"order_id": order.id},
        commit=False,
    )
    db.commit()
    db.refresh(order)
    logger.info("Customer %s placed order %s (Php%s)", customer.id, order.id, total)
    return order
