from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List

from storefront.schemas.common import PositiveId


class CartItemCreate(BaseModel):
    product_id: PositiveId
    quantity: int = Field(default=1, ge=1)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


class CartProduct(BaseModel):
    id: int
    name: str
    price: Decimal
    description: str
    available_quantity: int


class CartItemResponse(BaseModel):
    id: int
    product_name: str
    quantity: int
    price_per_item: Decimal
    total_price: Decimal
    product: CartProduct


class CartResponse(BaseModel):
    items: List[CartItemResponse]
    total: Decimal
    item_count: int
