from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple

from ledger.errors import InvalidArgumentError, NotFoundError
from ledger.models import Product

DEFAULT_PRODUCTS: Tuple[Product, ...] = (
    Product(
        id="1",
        name="Wireless Headphones",
        price=Decimal("99.99"),
        description="Premium noise-cancelling wireless headphones",
    ),
    Product(
        id="2",
        name="Smart Watch",
        price=Decimal("149.99"),
        description="Fitness tracking and notifications on your wrist",
    ),
    Product(
        id="3",
        name="Bluetooth Speaker",
        price=Decimal("79.99"),
        description="Portable speaker with amazing sound quality",
    ),
    Product(
        id="4",
        name="Laptop Backpack",
        price=Decimal("49.99"),
        description="Water-resistant backpack with laptop compartment",
    ),
)


class ProductCatalog:
    """Read-only lookup of purchasable items, fixed at construction."""

    def __init__(self, products: Iterable[Product] = DEFAULT_PRODUCTS):
        self._products: Tuple[Product, ...] = tuple(products)
        self._by_id: Dict[str, Product] = {}
        for product in self._products:
            if product.id in self._by_id:
                raise InvalidArgumentError(f"Duplicate product id {product.id!r}.")
            self._by_id[product.id] = product

    def __len__(self) -> int:
        return len(self._products)

    def list_products(self) -> Tuple[Product, ...]:
        return self._products

    def find(self, product_id: str) -> Optional[Product]:
        return self._by_id.get(product_id)

    def get(self, product_id: str) -> Product:
        product = self.find(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id!r} not found")
        return product
