"""Catalogue and checkout schemas."""

from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ProductResponse(BaseModel):
    id: int
    name: str
    unit: str
    price: Decimal
    available: Decimal = Decimal("0")

    model_config = ConfigDict(from_attributes=True)


class ProductCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    unit: Literal["kilo", "pc", "tali"] = "kilo"
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)


class PriceUpdateRequest(BaseModel):
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)


class StockCreateRequest(BaseModel):
    product_id: int
    member_id: int
    quantity: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)


class StockResponse(BaseModel):
    id: int
    product_id: int
    member_id: int
    quantity: Decimal
    sold_quantity: Decimal

    model_config = ConfigDict(from_attributes=True)


class CartItem(BaseModel):
    product_id: int
    quantity: Decimal


class CheckoutRequest(BaseModel):
    items: list[CartItem] = Field(default_factory=list)
    address_id: int | None = None


class OrderItemResponse(BaseModel):
    product_id: int
    stock_id: int
    quantity: Decimal
    unit_price: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    id: int
    status: str
    address_id: int | None
    total_amount: Decimal
    items: list[OrderItemResponse]

    model_config = ConfigDict(from_attributes=True)
