"""Product catalogue, admin stock and pricing, and customer checkout."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from agricart.api.v1.dependencies import AccessibleCustomerDep, AdminDep, SessionDep
from agricart.models import Order, Product, Stock, User, UserType
from agricart.schemas.catalog import (
    CheckoutRequest,
    OrderResponse,
    PriceUpdateRequest,
    ProductCreateRequest,
    ProductResponse,
    StockCreateRequest,
    StockResponse,
)
from agricart.services import checkout as checkout_service
from agricart.services.checkout import CartLine, CheckoutError, PriceChangeNotAllowedError
from agricart.services.lockout import AccountLockedError, CheckoutLockoutService, format_remaining

logger = logging.getLogger(__name__)

router = APIRouter(tags=["catalog"])


def _product_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        name=product.name,
        unit=product.unit,
        price=product.price,
        available=checkout_service.available_quantity(product),
    )


@router.get("/products", response_model=list[ProductResponse])
async def list_products(db: SessionDep) -> list[ProductResponse]:
    """List products that are still on sale with their available stock."""
    return [_product_response(product) for product in checkout_service.list_products(db)]


@router.post(
    "/cart/checkout",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def checkout(body: CheckoutRequest, db: SessionDep, user: AccessibleCustomerDep) -> Order:
    """Place an order for the cart.

    Refused with 423 while customer access is locked and with 429 while the
    customer's checkout lockout is active. Every rejected checkout counts
    toward that lockout; a successful one clears it.
    """
    limiter = CheckoutLockoutService(db)
    try:
        limiter.check_allowed(user.id)
    except AccountLockedError as err:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "message": "Too many failed checkout attempts. Please try again later.",
                "lockout": err.status,
                "formatted_time": format_remaining(err.status["remaining_time"]),
            },
        ) from err

    lines = [CartLine(product_id=item.product_id, quantity=item.quantity) for item in body.items]
    try:
        order = checkout_service.checkout(db, user, lines, body.address_id)
    except CheckoutError as err:
        lockout = limiter.record_failed_attempt(user.id)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(err), "lockout": lockout},
        ) from err

    limiter.clear(user.id)
    return order


# --- Admin ---------------------------------------------------------------------------


@router.post(
    "/admin/products",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_product(
    body: ProductCreateRequest, db: SessionDep, admin: AdminDep
) -> ProductResponse:
    product = checkout_service.create_product(db, body.name, body.unit, body.price)
    logger.info("Admin %s created product %s", admin.id, product.id)
    return _product_response(product)


@router.put("/admin/products/{product_id}/price", response_model=ProductResponse)
async def update_price(
    product_id: int, body: PriceUpdateRequest, db: SessionDep, admin: AdminDep
) -> ProductResponse:
    """Change a price; only accepted during an open price-change window."""
    try:
        product = checkout_service.update_price(db, admin, product_id, body.price)
    except PriceChangeNotAllowedError as err:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(err)) from err
    except CheckoutError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(err)) from err
    return _product_response(product)


@router.post(
    "/admin/stocks",
    response_model=StockResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_stock(body: StockCreateRequest, db: SessionDep, admin: AdminDep) -> Stock:
    """Record stock supplied by a member."""
    member = db.get(User, body.member_id)
    if member is None or member.type != UserType.MEMBER:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    try:
        return checkout_service.add_stock(db, body.product_id, member, body.quantity)
    except CheckoutError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(err)) from err
