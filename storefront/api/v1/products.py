from decimal import Decimal
from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.orm import Session
from typing import Optional

from storefront.api.deps import require_admin
from storefront.core.rate_limiter import limiter
from storefront.db.session import get_db
from storefront.models.user import User
from storefront.schemas.common import MAX_ID
from storefront.schemas.product import ProductCreate, ProductFilters, ProductResponse, ProductUpdate
from storefront.services import catalog_service
from storefront.utils.response import success

router = APIRouter()


def _serialize(product) -> dict:
    return ProductResponse.model_validate(product).model_dump(mode="json")


@router.get("", response_model=dict)
@router.get("/", response_model=dict, include_in_schema=False)
@limiter.limit("100/minute")
def get_products(
    request: Request,
    search: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    in_stock: bool = False,
    db: Session = Depends(get_db),
):
    """
    Get products with optional search, category, price range and stock filters
    """
    filters = ProductFilters(
        search=search,
        category=category,
        min_price=min_price,
        max_price=max_price,
        in_stock=in_stock,
    )
    products = catalog_service.list_products(db, filters)
    return success(
        data=[_serialize(product) for product in products],
        message="Products retrieved",
        meta={"total": len(products)},
    )


@router.get("/categories", response_model=dict)
@limiter.limit("100/minute")
def get_categories(request: Request, db: Session = Depends(get_db)):
    """Get distinct product categories"""
    return success(data=catalog_service.list_categories(db), message="Categories retrieved")


@router.get("/{product_id}", response_model=dict)
@limiter.limit("100/minute")
def get_product_detail(
    request: Request,
    product_id: int = Path(..., ge=1, le=MAX_ID),
    db: Session = Depends(get_db),
):
    product = catalog_service.get_product(db, product_id)
    return success(data=_serialize(product), message="Product retrieved")


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED, include_in_schema=False)
def create_product(
    product_in: ProductCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Create a product (admin only)."""
    product = catalog_service.create_product(db, product_in)
    return success(data=_serialize(product), message="Product created")


@router.put("/{product_id}", response_model=dict)
def update_product(
    product_in: ProductUpdate,
    product_id: int = Path(..., ge=1, le=MAX_ID),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Partially update a product (admin only)."""
    product = catalog_service.update_product(db, product_id, product_in)
    return success(data=_serialize(product), message="Product updated")


@router.delete("/{product_id}", response_model=dict)
def delete_product(
    product_id: int = Path(..., ge=1, le=MAX_ID),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Delete a product (admin only). Existing order lines keep their snapshot."""
    catalog_service.delete_product(db, product_id)
    return success(message="Product deleted successfully")
