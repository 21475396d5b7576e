from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from ledger.errors import InvalidArgumentError
from ledger.locks import KeyedLocks
from ledger.models import ZERO, CartItem, Clock, LedgerStats, Order, UserStats
from utils.config import Settings
from utils.pure import to_money


class OrderLedger:
    """
    Append-only history of orders plus a per-user stats cache.

    record_order is serialized per user, and both the append and the stats
    update happen with no await in between, so the cached UserStats for a user
    always matches a projection of that user's orders.
    """

    def __init__(self, settings: Settings, clock: Optional[Clock] = None) -> None:
        self._settings = settings
        self._clock = clock or datetime.now
        self._orders: List[Order] = []
        self._by_id: Dict[str, Order] = {}
        self._stats: Dict[str, UserStats] = {}
        self._locks = KeyedLocks()

    def __len__(self) -> int:
        return len(self._orders)

    async def record_order(
        self,
        user_id: str,
        items: Iterable[CartItem],
        total_amount: Decimal,
        discount_code: Optional[str] = None,
        discount_amount: Decimal = ZERO,
        order_id: Optional[str] = None,
    ) -> Order:
        """
        Append an order for `user_id` and return it.

        order_number is the user's previous order count + 1. final_amount is
        total_amount - discount_amount; keeping the discount within the total
        is up to the caller.
        """
        total_amount = to_money(total_amount)
        discount_amount = to_money(discount_amount)
        if total_amount < 0 or discount_amount < 0:
            raise InvalidArgumentError("Order amounts cannot be negative.")
        order_id = order_id or str(uuid.uuid4())

        async with self._locks(user_id):
            if order_id in self._by_id:
                raise InvalidArgumentError(f"Order id {order_id!r} already recorded.")
            prior = self._stats.get(user_id) or UserStats(user_id=user_id)
            now = self._clock()
            order = Order(
                id=order_id,
                user_id=user_id,
                items=tuple(items),
                total_amount=total_amount,
                discount_code=discount_code,
                discount_amount=discount_amount,
                final_amount=total_amount - discount_amount,
                created_at=now,
                order_number=prior.order_count + 1,
            )
            self._orders.append(order)
            self._by_id[order.id] = order
            self._stats[user_id] = UserStats(
                user_id=user_id,
                order_count=prior.order_count + 1,
                total_spent=prior.total_spent + order.final_amount,
                last_order_date=now,
            )
            return order

    async def get_user_order_count(self, user_id: str) -> int:
        stats = self._stats.get(user_id)
        return stats.order_count if stats else 0

    async def get_user_stats(self, user_id: str) -> Optional[UserStats]:
        return self._stats.get(user_id)

    async def should_issue(self, user_id: str) -> bool:
        """True when the user's order count is a positive multiple of the threshold."""
        count = await self.get_user_order_count(user_id)
        return count > 0 and count % self._settings.nth_order_for_discount == 0

    async def get_order(self, order_id: str) -> Optional[Order]:
        return self._by_id.get(order_id)

    async def list_orders(self) -> Tuple[Order, ...]:
        return tuple(self._orders)

    async def list_user_orders(self, user_id: str) -> Tuple[Order, ...]:
        return tuple(o for o in self._orders if o.user_id == user_id)

    async def aggregate_stats(self) -> LedgerStats:
        """Totals recomputed from the order history on every call."""
        orders = tuple(self._orders)
        per_user: Dict[str, UserStats] = {}
        for order in orders:
            prev = per_user.get(order.user_id) or UserStats(user_id=order.user_id)
            per_user[order.user_id] = UserStats(
                user_id=order.user_id,
                order_count=prev.order_count + 1,
                total_spent=prev.total_spent + order.final_amount,
                last_order_date=order.created_at,
            )
        return LedgerStats(
            total_orders=len(orders),
            total_items_purchased=sum(o.item_count for o in orders),
            total_purchase_amount=sum((o.total_amount for o in orders), ZERO),
            total_discount_amount=sum((o.discount_amount for o in orders), ZERO),
            per_user_stats=tuple(per_user.values()),
        )
