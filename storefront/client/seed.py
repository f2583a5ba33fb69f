from __future__ import annotations

from typing import Any, Dict, Iterable, List

import structlog

from storefront.client.api import ClientError, StorefrontClient

logger = structlog.get_logger()

SAMPLE_PRODUCTS: List[Dict[str, Any]] = [
    {
        "barcode": "4800000000011",
        "name": "Wireless Mouse",
        "description": "Two-button optical mouse with USB receiver.",
        "price": "450.00",
        "quantity": 25,
        "category": "Electronics",
    },
    {
        "barcode": "4800000000028",
        "name": "Mechanical Keyboard",
        "description": "Tenkeyless keyboard with brown switches.",
        "price": "2499.00",
        "quantity": 10,
        "category": "Electronics",
    },
    {
        "barcode": "4800000000035",
        "name": "Canvas Tote Bag",
        "description": "Reusable cotton tote for groceries.",
        "price": "199.50",
        "quantity": 40,
        "category": "Accessories",
    },
]


def _is_duplicate_barcode(exc: ClientError) -> bool:
    return exc.status_code == 422 and isinstance(exc.errors, dict) and "barcode" in exc.errors


def seed_catalog(client: StorefrontClient, products: Iterable[Dict[str, Any]] = SAMPLE_PRODUCTS) -> Dict[str, List[str]]:
    """Create products through the admin API, skipping barcodes that already exist."""
    if not client.user or client.user.get("role") != "admin":
        raise ClientError(403, "Seeding requires an admin session")

    created: List[str] = []
    skipped: List[str] = []
    for product in products:
        try:
            client.create_product(**product)
        except ClientError as exc:
            if not _is_duplicate_barcode(exc):
                raise
            skipped.append(product["barcode"])
            logger.info("seed_product_skipped", barcode=product["barcode"])
            continue
        created.append(product["barcode"])
        logger.info("seed_product_created", barcode=product["barcode"])

    return {"created": created, "skipped": skipped}
