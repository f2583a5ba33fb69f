from decimal import Decimal
from typing import List, Optional
from datetime import datetime

import bleach
from pydantic import BaseModel, Field, field_validator

from storefront.models.order import OrderStatus, PaymentMethod
from storefront.schemas.common import PositiveId


class OrderLineCreate(BaseModel):
    product_id: PositiveId
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    shipping_address: str = Field(..., max_length=1000)
    payment_method: PaymentMethod
    shipping_fee: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    cart_items: List[OrderLineCreate] = Field(..., min_length=1)

    @field_validator("shipping_address")
    @classmethod
    def validate_shipping_address(cls, value: str) -> str:
        sanitized = bleach.clean(value, tags=[], attributes={}, strip=True).strip()
        if not sanitized:
            raise ValueError("The shipping address field is required.")
        return sanitized


class OrderItemResponse(BaseModel):
    id: int
    product_id: Optional[int]
    product_name: str
    quantity: int
    price: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    user_id: int
    shipping_address: str
    payment_method: PaymentMethod
    shipping_fee: Decimal
    subtotal: Decimal
    total: Decimal
    status: OrderStatus
    items: List[OrderItemResponse]
    created_at: datetime

    class Config:
        from_attributes = True


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderStatusHistoryResponse(BaseModel):
    id: int
    order_id: int
    old_status: Optional[str]
    new_status: str
    changed_by: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True
