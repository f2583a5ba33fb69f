"""Client-side cart cache.

The local cart is a convenience mirror persisted to a JSON file. The server
never trusts it: stock is re-validated when the snapshot is posted at
checkout, and the cache is cleared only after the order is accepted.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

import structlog

from storefront.client.api import StorefrontClient

logger = structlog.get_logger()


@dataclass
class LocalCartLine:
    product_id: int
    name: str
    price: str
    quantity: int
    # Stock seen when the product was added; the server has the final say.
    max_quantity: int

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.price) * self.quantity


class LocalCart:
    def __init__(self, storage_path: Optional[Path] = None):
        self.storage_path = Path(storage_path) if storage_path else None
        self._lines: Dict[int, LocalCartLine] = {}
        self._load()

    def _load(self) -> None:
        if not self.storage_path or not self.storage_path.exists():
            return
        try:
            raw = json.loads(self.storage_path.read_text(encoding="utf-8"))
            lines = [LocalCartLine(**entry) for entry in raw]
        except (OSError, ValueError, TypeError, KeyError):
            logger.warning("local_cart_unreadable", path=str(self.storage_path))
            return
        for line in lines:
            self._lines[line.product_id] = line

    def _save(self) -> None:
        if not self.storage_path:
            return
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        payload = [asdict(line) for line in self._lines.values()]
        self.storage_path.write_text(json.dumps(payload), encoding="utf-8")

    @property
    def lines(self) -> List[LocalCartLine]:
        return list(self._lines.values())

    def add(self, product: Dict, quantity: int = 1) -> bool:
        """Add ``quantity`` of a catalog product; returns False when it would exceed known stock."""
        if quantity < 1:
            return False
        product_id = int(product["id"])
        existing = self._lines.get(product_id)
        if existing:
            new_quantity = existing.quantity + quantity
            if new_quantity > existing.max_quantity:
                return False
            existing.quantity = new_quantity
        else:
            available = int(product.get("quantity", 0))
            if quantity > available:
                return False
            self._lines[product_id] = LocalCartLine(
                product_id=product_id,
                name=product["name"],
                price=str(product["price"]),
                quantity=quantity,
                max_quantity=available,
            )
        self._save()
        return True

    def update_quantity(self, product_id: int, quantity: int) -> bool:
        line = self._lines.get(product_id)
        if not line:
            return False
        if quantity <= 0:
            self.remove(product_id)
            return True
        if quantity > line.max_quantity:
            return False
        line.quantity = quantity
        self._save()
        return True

    def remove(self, product_id: int) -> None:
        if self._lines.pop(product_id, None) is not None:
            self._save()

    def clear(self) -> None:
        self._lines.clear()
        self._save()

    def total(self) -> Decimal:
        return sum((line.line_total for line in self._lines.values()), Decimal("0.00"))

    def count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def snapshot(self) -> List[Dict[str, int]]:
        return [
            {"product_id": line.product_id, "quantity": line.quantity}
            for line in self._lines.values()
        ]

    def checkout(
        self,
        client: StorefrontClient,
        shipping_address: str,
        payment_method: str,
        shipping_fee: Decimal,
    ) -> Dict:
        """Post the cart snapshot as an order; the cache is cleared only on success."""
        order = client.place_order(
            shipping_address=shipping_address,
            payment_method=payment_method,
            shipping_fee=shipping_fee,
            cart_items=self.snapshot(),
        )
        self.clear()
        logger.info("local_cart_checked_out", order_id=order["id"])
        return order
