from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class ProductFilters(BaseModel):
    search: Optional[str] = None
    category: Optional[str] = None
    min_price: Optional[Decimal] = Field(default=None, ge=0)
    max_price: Optional[Decimal] = Field(default=None, ge=0)
    in_stock: bool = False


class ProductCreate(BaseModel):
    barcode: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    quantity: int = Field(..., ge=0)
    category: str = Field(..., min_length=1, max_length=100)


class ProductUpdate(BaseModel):
    barcode: Optional[str] = Field(default=None, min_length=1, max_length=100)
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    quantity: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)


class ProductResponse(BaseModel):
    id: int
    barcode: str
    name: str
    description: str
    price: Decimal
    quantity: int
    category: str
    in_stock: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
