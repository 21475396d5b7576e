import secrets
import string
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENTS = Decimal("0.01")
CODE_ALPHABET = string.ascii_uppercase + string.digits

Number = Union[Decimal, int, str, float]


def to_money(value: Number) -> Decimal:
    """
    Convert a number to a Decimal rounded to cents.

    Floats go through str() first so 0.1 becomes Decimal("0.10"), not the
    binary expansion.
    """
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary amount")
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """Return `percentage` percent of `amount`, rounded to cents."""
    return to_money(Decimal(amount) * Decimal(percentage) / Decimal(100))


def random_token(length: int, alphabet: str = CODE_ALPHABET) -> str:
    """Uniformly drawn token of `length` characters from `alphabet`."""
    if length < 1:
        raise ValueError("Token length must be positive.")
    return "".join(secrets.choice(alphabet) for _ in range(length))
