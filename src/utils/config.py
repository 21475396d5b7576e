from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable, TypeVar

from ledger.errors import InvalidArgumentError

DISCOUNT_PERCENTAGE = Decimal("10")
NTH_ORDER_FOR_DISCOUNT = 3  # every 3rd order per user mints a personal code
CODE_PREFIX = "DISCOUNT-"
CODE_LENGTH = 6

T = TypeVar("T")


def _env(name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except (TypeError, ValueError, InvalidOperation):
        raise InvalidArgumentError(f"{name} has an invalid value: {raw!r}")


@dataclass(frozen=True)
class Settings:
    """
    Tunables of the ledger.

    Fields:
      - discount_percentage: reduction applied to an order total when a code is used
      - nth_order_for_discount: a personal code is issued every time a user's
        order count reaches a multiple of this
      - code_prefix / code_length: shape of synthesized codes
    """

    discount_percentage: Decimal = DISCOUNT_PERCENTAGE
    nth_order_for_discount: int = NTH_ORDER_FOR_DISCOUNT
    code_prefix: str = CODE_PREFIX
    code_length: int = CODE_LENGTH

    def __post_init__(self):
        pct = Decimal(self.discount_percentage)
        if not pct.is_finite() or pct <= 0 or pct > 100:
            raise InvalidArgumentError(
                "Discount percentage must be within (0, 100]."
            )
        if self.nth_order_for_discount < 1:
            raise InvalidArgumentError("Discount threshold must be positive.")
        if self.code_length < 1:
            raise InvalidArgumentError("Code length must be positive.")

    @classmethod
    def from_env(cls) -> "Settings":
        """Read overrides from SHOP_* environment variables."""
        return cls(
            discount_percentage=_env(
                "SHOP_DISCOUNT_PERCENTAGE", DISCOUNT_PERCENTAGE, Decimal
            ),
            nth_order_for_discount=_env(
                "SHOP_NTH_ORDER_FOR_DISCOUNT", NTH_ORDER_FOR_DISCOUNT, int
            ),
            code_prefix=os.getenv("SHOP_CODE_PREFIX", CODE_PREFIX),
            code_length=_env("SHOP_CODE_LENGTH", CODE_LENGTH, int),
        )
