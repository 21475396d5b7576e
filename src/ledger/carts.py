from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List

from ledger.catalog import ProductCatalog
from ledger.errors import InvalidArgumentError
from ledger.locks import KeyedLocks
from ledger.models import Cart, CartItem


def _check_quantity(quantity) -> int:
    # bool is an int subclass; True must not mean "one"
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidArgumentError(
            f"Quantity must be a positive integer, got {quantity!r}."
        )
    return quantity


class CartHandle:
    """Access to one user's cart while its lock is held by `CartStore.transaction`."""

    def __init__(self, store: "CartStore", user_id: str) -> None:
        self._store = store
        self.user_id = user_id

    def snapshot(self) -> Cart:
        return self._store._get(self.user_id)

    def clear(self) -> None:
        self._store._put(Cart(user_id=self.user_id))


class CartStore:
    """
    Per-user carts, created lazily.

    Carts are frozen; every mutation stores a rebuilt Cart so the total is
    always the sum of its lines. Mutations for one user are serialized on that
    user's lock.
    """

    def __init__(self, catalog: ProductCatalog) -> None:
        self._catalog = catalog
        self._carts: Dict[str, Cart] = {}
        self._locks = KeyedLocks()

    def _get(self, user_id: str) -> Cart:
        cart = self._carts.get(user_id)
        if cart is None:
            cart = Cart(user_id=user_id)
            self._carts[user_id] = cart
        return cart

    def _put(self, cart: Cart) -> None:
        self._carts[cart.user_id] = cart

    async def get_or_create_cart(self, user_id: str) -> Cart:
        return self._get(user_id)

    async def add_item(self, user_id: str, product_id: str, quantity: int) -> Cart:
        """
        Add `quantity` of a product to the user's cart.
        If the product is already in the cart its line is incremented in place,
        otherwise a new line is appended.
        """
        quantity = _check_quantity(quantity)
        product = self._catalog.get(product_id)
        async with self._locks(user_id):
            cart = self._get(user_id)
            items: List[CartItem] = list(cart.items)
            for idx, item in enumerate(items):
                if item.product.id == product.id:
                    items[idx] = CartItem(product=item.product, quantity=item.quantity + quantity)
                    break
            else:
                items.append(CartItem(product=product, quantity=quantity))
            updated = Cart.build(user_id, items)
            self._put(updated)
            return updated

    async def clear(self, user_id: str) -> None:
        async with self._locks(user_id):
            self._put(Cart(user_id=user_id))

    @asynccontextmanager
    async def transaction(self, user_id: str) -> AsyncIterator[CartHandle]:
        """Hold the user's cart lock for a multi-step operation such as checkout."""
        async with self._locks(user_id):
            yield CartHandle(self, user_id)
