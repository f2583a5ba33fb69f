from typing import List, Optional

import structlog
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.core.exceptions import DuplicateBarcode, ProductNotFound
from storefront.models.product import Product
from storefront.schemas.product import ProductCreate, ProductFilters, ProductUpdate

logger = structlog.get_logger()


def list_products(db: Session, filters: ProductFilters) -> List[Product]:
    """Return catalog products matching every supplied filter, ordered by id."""
    query = db.query(Product)

    if filters.search:
        search_term = f"%{filters.search}%"
        query = query.filter(
            or_(
                Product.name.ilike(search_term),
                Product.description.ilike(search_term),
            )
        )

    if filters.category:
        query = query.filter(Product.category == filters.category)

    if filters.min_price is not None:
        query = query.filter(Product.price >= filters.min_price)

    if filters.max_price is not None:
        query = query.filter(Product.price <= filters.max_price)

    if filters.in_stock:
        query = query.filter(Product.quantity > 0)

    return query.order_by(Product.id.asc()).all()


def list_categories(db: Session) -> List[str]:
    rows = (
        db.query(Product.category)
        .filter(Product.category.isnot(None))
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [category for (category,) in rows]


def get_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise ProductNotFound()
    return product


def _ensure_unique_barcode(db: Session, barcode: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Product.id).filter(Product.barcode == barcode)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise DuplicateBarcode()


def _commit_product(db: Session, product: Product) -> Product:
    try:
        db.commit()
    except IntegrityError as exc:
        # Lost a race with another writer using the same barcode.
        db.rollback()
        raise DuplicateBarcode() from exc
    db.refresh(product)
    return product


def create_product(db: Session, product_in: ProductCreate) -> Product:
    _ensure_unique_barcode(db, product_in.barcode)

    product = Product(**product_in.model_dump())
    db.add(product)
    _commit_product(db, product)

    logger.info("product_created", product_id=product.id, barcode=product.barcode)
    return product


def update_product(db: Session, product_id: int, product_in: ProductUpdate) -> Product:
    product = get_product(db, product_id)
    changes = product_in.model_dump(exclude_unset=True, exclude_none=True)

    if "barcode" in changes:
        _ensure_unique_barcode(db, changes["barcode"], exclude_id=product.id)

    for field, value in changes.items():
        setattr(product, field, value)
    _commit_product(db, product)

    logger.info("product_updated", product_id=product.id, fields=sorted(changes))
    return product


def delete_product(db: Session, product_id: int) -> None:
    product = get_product(db, product_id)
    db.delete(product)
    db.commit()
    logger.info("product_deleted", product_id=product_id)
