# provide dataclass models

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional, Tuple

from ledger.errors import InvalidArgumentError
from utils.pure import to_money

ZERO = Decimal("0.00")

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: Decimal
    description: str = ""

    def __post_init__(self):
        price = to_money(self.price)
        if price < 0:
            raise InvalidArgumentError(f"Product {self.id} has a negative price.")
        object.__setattr__(self, "price", price)


@dataclass(frozen=True)
class CartItem:
    product: Product
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.product.price * self.quantity


@dataclass(frozen=True)
class Cart:
    user_id: str
    items: Tuple[CartItem, ...] = ()
    total_amount: Decimal = ZERO

    @classmethod
    def build(cls, user_id: str, items) -> "Cart":
        """The only way a non-empty cart is made: total is derived from items."""
        items = tuple(items)
        total = sum((item.subtotal for item in items), ZERO)
        return cls(user_id=user_id, items=items, total_amount=to_money(total))

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


@dataclass(frozen=True)
class DiscountCode:
    code: str
    created_at: datetime
    used: bool = False
    owner_user_id: Optional[str] = None  # None: redeemable by any user
    order_id: Optional[str] = None
    used_at: Optional[datetime] = None

    @property
    def is_personal(self) -> bool:
        return self.owner_user_id is not None

    def usable_by(self, user_id: str) -> bool:
        return not self.used and (
            self.owner_user_id is None or self.owner_user_id == user_id
        )


@dataclass(frozen=True)
class Order:
    id: str
    user_id: str
    items: Tuple[CartItem, ...]
    total_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    created_at: datetime
    order_number: int  # 1-based, per user
    discount_code: Optional[str] = None

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


@dataclass(frozen=True)
class UserStats:
    user_id: str
    order_count: int = 0
    total_spent: Decimal = ZERO
    last_order_date: Optional[datetime] = None


@dataclass(frozen=True)
class DiscountPreview:
    code: str
    discount_amount: Decimal
    total_after_discount: Decimal


class CheckoutState(Enum):
    START = "start"
    CART_VALIDATED = "cart_validated"
    DISCOUNT_RESOLVED = "discount_resolved"
    ORDER_RECORDED = "order_recorded"
    CART_CLEARED = "cart_cleared"
    ELIGIBILITY_CHECKED = "eligibility_checked"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class CheckoutResult:
    order_id: str
    order_number: int
    new_discount_code: Optional[DiscountCode] = None
    discount_code: Optional[str] = None  # code actually redeemed by this order
    discount_amount: Decimal = ZERO
    state: CheckoutState = CheckoutState.DONE
    stages: Tuple[CheckoutState, ...] = ()


@dataclass(frozen=True)
class LedgerStats:
    total_orders: int = 0
    total_items_purchased: int = 0
    total_purchase_amount: Decimal = ZERO
    total_discount_amount: Decimal = ZERO
    per_user_stats: Tuple[UserStats, ...] = ()


@dataclass(frozen=True)
class AdminStats(LedgerStats):
    discount_codes: Tuple[DiscountCode, ...] = field(default_factory=tuple)
