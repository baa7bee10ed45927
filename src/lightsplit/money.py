"""Fixed-point money helpers.

Amounts cross the public API as ``Decimal`` with two decimal places and are
converted to integer minor units (cents) for all arithmetic.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from .exceptions import InvalidAmountError

CENT = Decimal("0.01")
MINOR_UNITS_PER_MAJOR = 100


def parse_amount(value: Any) -> Decimal:
    """
    Parse a caller-supplied amount into a positive two-place Decimal.

    Floats are converted through ``str`` so that ``10.1`` becomes
    ``Decimal("10.1")`` rather than its binary expansion.

    Args:
        value: Decimal, int, float or numeric string

    Returns:
        The amount quantized to cents

    Raises:
        InvalidAmountError: If the value is not a finite positive number with
                            at most two decimal places
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(f"Amount must be a number, got {value!r}")

    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, int | float):
            amount = Decimal(str(value))
        elif isinstance(value, str):
            amount = Decimal(value.strip())
        else:
            raise InvalidAmountError(f"Amount must be a number, got {value!r}")
    except InvalidOperation as e:
        raise InvalidAmountError(f"Amount must be a number, got {value!r}") from e

    if not amount.is_finite():
        raise InvalidAmountError(f"Amount must be finite, got {value!r}")
    if amount <= 0:
        raise InvalidAmountError(f"Amount must be positive, got {amount}")

    try:
        quantized = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise InvalidAmountError(f"Amount {amount} is too large") from e
    if amount != quantized:
        raise InvalidAmountError(
            f"Amount {amount} has more precision than one cent"
        )

    return quantized


def to_minor_units(amount: Decimal) -> int:
    """
    Convert a Decimal amount to integer cents.

    Uses ROUND_HALF_UP for consistency with ``quantize_amount``.
    """
    cents = amount * MINOR_UNITS_PER_MAJOR
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(cents: int) -> Decimal:
    """Convert integer cents back to a two-place Decimal."""
    return (Decimal(cents) / MINOR_UNITS_PER_MAJOR).quantize(CENT)


def quantize_amount(amount: Decimal) -> Decimal:
    """Round a derived amount (e.g. an average) to cents, half up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
