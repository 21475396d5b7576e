from __future__ import annotations

from typing import Optional, Tuple

from ledger.errors import (
    ConflictError,
    EmptyCartError,
    InvalidArgumentError,
    InvalidCodeError,
    LedgerError,
    UnauthenticatedError,
)
from ledger.models import (
    AdminStats,
    Cart,
    CheckoutResult,
    DiscountCode,
    DiscountPreview,
    Order,
    Product,
    UserStats,
)
from ledger.store import LedgerStore
from utils.logger import get_logger

_logger = get_logger(__name__)


def _require_user(user_id: Optional[str]) -> str:
    if user_id is None or not str(user_id).strip():
        raise UnauthenticatedError()
    return user_id


class ShopService:
    """
    Operations offered to the presentation / HTTP layer.

    Each call checks the caller's identity, delegates to the ledger store and
    logs the outcome. Ledger errors are re-raised unchanged for the caller to
    turn into messages or status codes.
    """

    def __init__(self, store: LedgerStore) -> None:
        self.store = store

    # ---------------------------
    # Catalog
    # ---------------------------

    async def list_products(self) -> Tuple[Product, ...]:
        return self.store.catalog.list_products()

    async def get_product(self, product_id: str) -> Product:
        return self.store.catalog.get(product_id)

    # ---------------------------
    # Cart
    # ---------------------------

    async def get_cart(self, user_id: Optional[str]) -> Cart:
        """The user's cart, empty if they never added anything."""
        user_id = _require_user(user_id)
        return await self.store.carts.get_or_create_cart(user_id)

    async def add_to_cart(
        self, user_id: Optional[str], product_id: str, quantity: int = 1
    ) -> Cart:
        user_id = _require_user(user_id)
        try:
            cart = await self.store.carts.add_item(user_id, product_id, quantity)
        except LedgerError as e:
            _logger.warning(f"add_to_cart rejected for {user_id}: {e.message}")
            raise
        _logger.debug(
            f"{user_id} added {quantity} x {product_id}, cart total {cart.total_amount}"
        )
        return cart

    # ---------------------------
    # Discounts & checkout
    # ---------------------------

    async def preview_discount(
        self, user_id: Optional[str], code: Optional[str]
    ) -> DiscountPreview:
        """
        What `code` would take off the current cart, without redeeming it.
        Raises EmptyCartError, InvalidArgumentError or InvalidCodeError.
        """
        user_id = _require_user(user_id)
        try:
            return await self.store.checkout.preview(user_id, code or "")
        except (EmptyCartError, InvalidArgumentError, InvalidCodeError) as e:
            _logger.info(f"Discount preview for {user_id} refused: {e.message}")
            raise

    async def checkout(
        self, user_id: Optional[str], code: Optional[str] = None
    ) -> CheckoutResult:
        user_id = _require_user(user_id)
        try:
            result = await self.store.checkout.checkout(user_id, code)
        except EmptyCartError:
            _logger.info(f"Checkout for {user_id} refused: cart is empty")
            raise
        if code and result.discount_code is None:
            _logger.info(f"Code {code!r} not applicable for {user_id}, ignored")
        _logger.info(
            f"Order #{result.order_number} ({result.order_id}) placed by {user_id}"
        )
        if result.new_discount_code is not None:
            _logger.info(
                f"Issued {result.new_discount_code.code} to {user_id} "
                f"after order #{result.order_number}"
            )
        return result

    async def generate_discount_code(
        self, custom_code: Optional[str] = None
    ) -> DiscountCode:
        """Admin-created code, redeemable once by any user."""
        try:
            entry = await self.store.discounts.generate(custom_code or None)
        except (ConflictError, InvalidArgumentError) as e:
            _logger.warning(f"Discount code not created: {e.message}")
            raise
        _logger.info(f"Admin discount code {entry.code} created")
        return entry

    async def list_discount_codes(self) -> Tuple[DiscountCode, ...]:
        return await self.store.discounts.list_all()

    async def list_user_discount_codes(
        self, user_id: Optional[str]
    ) -> Tuple[DiscountCode, ...]:
        """Unused personal codes of the user."""
        user_id = _require_user(user_id)
        return await self.store.discounts.list_available(user_id)

    # ---------------------------
    # Orders & reports
    # ---------------------------

    async def list_user_orders(self, user_id: Optional[str]) -> Tuple[Order, ...]:
        user_id = _require_user(user_id)
        return await self.store.orders.list_user_orders(user_id)

    async def get_user_stats(self, user_id: Optional[str]) -> UserStats:
        user_id = _require_user(user_id)
        stats = await self.store.orders.get_user_stats(user_id)
        return stats or UserStats(user_id=user_id)

    async def get_admin_stats(self) -> AdminStats:
        stats = await self.store.orders.aggregate_stats()
        codes = await self.store.discounts.list_all()
        return AdminStats(
            total_orders=stats.total_orders,
            total_items_purchased=stats.total_items_purchased,
            total_purchase_amount=stats.total_purchase_amount,
            total_discount_amount=stats.total_discount_amount,
            per_user_stats=stats.per_user_stats,
            discount_codes=codes,
        )
