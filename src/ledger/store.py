# builds the process-wide ledger state, handed to every caller by reference
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from ledger.carts import CartStore
from ledger.catalog import DEFAULT_PRODUCTS, ProductCatalog
from ledger.checkout import CheckoutCoordinator
from ledger.discounts import DiscountLedger
from ledger.models import Clock, Product
from ledger.orders import OrderLedger
from utils.config import Settings
from utils.logger import get_logger

_logger = get_logger(__name__)


@dataclass
class LedgerStore:
    """
    Every piece of mutable shop state, created once per process.

    Fields:
      - settings: discount percentage, threshold and code shape
      - catalog: read-only products
      - carts / discounts / orders: the three ledgers, each owning its records
      - checkout: coordinator wired to the three ledgers above
    """

    settings: Settings
    catalog: ProductCatalog
    carts: CartStore
    discounts: DiscountLedger
    orders: OrderLedger
    checkout: CheckoutCoordinator


def open_store(
    settings: Optional[Settings] = None,
    products: Iterable[Product] = DEFAULT_PRODUCTS,
    clock: Optional[Clock] = None,
) -> LedgerStore:
    """
    Construct the ledger state; pass the result to whoever needs it.
    Without explicit settings the SHOP_* environment overrides apply.
    """
    settings = settings or Settings.from_env()
    clock = clock or datetime.now
    catalog = ProductCatalog(products)
    carts = CartStore(catalog)
    discounts = DiscountLedger(settings, clock=clock)
    orders = OrderLedger(settings, clock=clock)
    checkout = CheckoutCoordinator(settings, carts, discounts, orders)
    _logger.info(
        f"Ledger ready: {len(catalog)} products, "
        f"{settings.discount_percentage}% off every "
        f"{settings.nth_order_for_discount} orders."
    )
    return LedgerStore(
        settings=settings,
        catalog=catalog,
        carts=carts,
        discounts=discounts,
        orders=orders,
        checkout=checkout,
    )
