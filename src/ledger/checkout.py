from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Optional

from ledger.carts import CartStore
from ledger.discounts import DiscountLedger
from ledger.errors import EmptyCartError, InvalidArgumentError, InvalidCodeError
from ledger.models import (
    ZERO,
    CheckoutResult,
    CheckoutState,
    DiscountCode,
    DiscountPreview,
)
from ledger.orders import OrderLedger
from utils.config import Settings
from utils.pure import percent_of


class CheckoutCoordinator:
    """
    Turns a user's cart into an order.

    One checkout runs while holding that user's cart lock, which also
    serializes checkouts of the same user. Locks are always taken in the
    order cart -> discount ledger -> order ledger.
    """

    def __init__(
        self,
        settings: Settings,
        carts: CartStore,
        discounts: DiscountLedger,
        orders: OrderLedger,
    ) -> None:
        self._settings = settings
        self._carts = carts
        self._discounts = discounts
        self._orders = orders

    def discount_for(self, total_amount: Decimal) -> Decimal:
        return percent_of(total_amount, self._settings.discount_percentage)

    async def preview(self, user_id: str, code: str) -> DiscountPreview:
        """
        Dry run of applying `code` to the user's current cart. Nothing changes.
        Raises EmptyCartError, InvalidArgumentError (no code) or InvalidCodeError.
        A whitespace-only code is a code, it just never matches.
        """
        cart = await self._carts.get_or_create_cart(user_id)
        if cart.is_empty:
            raise EmptyCartError()
        if not code:
            raise InvalidArgumentError("No discount code provided")
        if await self._discounts.validate(code, user_id) is None:
            raise InvalidCodeError()
        discount = self.discount_for(cart.total_amount)
        return DiscountPreview(
            code=code,
            discount_amount=discount,
            total_after_discount=cart.total_amount - discount,
        )

    async def checkout(self, user_id: str, code: Optional[str] = None) -> CheckoutResult:
        """
        Record an order from the cart, redeem `code` if this user may use it,
        clear the cart, and mint a personal code on every Nth order.

        A code that doesn't validate just means no discount. The only failure
        is EmptyCartError, raised before anything is changed. Both the result
        and the error carry the CheckoutState stages the attempt went through.
        """
        stages = [CheckoutState.START]
        async with self._carts.transaction(user_id) as cart_handle:
            cart = cart_handle.snapshot()
            if cart.is_empty:
                stages.append(CheckoutState.FAILED)
                raise EmptyCartError(state=CheckoutState.FAILED, stages=stages)
            stages.append(CheckoutState.CART_VALIDATED)

            # the id is fixed up front so the claim and the order agree on it
            order_id = str(uuid.uuid4())
            claimed: Optional[DiscountCode] = None
            discount = ZERO
            if code:
                claimed = await self._discounts.claim(code, user_id, order_id)
                if claimed is not None:
                    discount = self.discount_for(cart.total_amount)
            stages.append(CheckoutState.DISCOUNT_RESOLVED)

            order = await self._orders.record_order(
                user_id,
                cart.items,
                cart.total_amount,
                discount_code=code if claimed else None,
                discount_amount=discount,
                order_id=order_id,
            )
            stages.append(CheckoutState.ORDER_RECORDED)

            cart_handle.clear()
            stages.append(CheckoutState.CART_CLEARED)

            new_code = None
            if await self._orders.should_issue(user_id):
                new_code = await self._discounts.generate(owner_user_id=user_id)
            stages.append(CheckoutState.ELIGIBILITY_CHECKED)

        stages.append(CheckoutState.DONE)
        return CheckoutResult(
            order_id=order.id,
            order_number=order.order_number,
            new_discount_code=new_code,
            discount_code=order.discount_code,
            discount_amount=discount,
            state=CheckoutState.DONE,
            stages=tuple(stages),
        )
