from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple

from pos.config import settings
from pos.models.core import PaymentMethod

ZERO = Decimal("0")


def _money(x) -> Decimal:
    """Round to whole currency units (Rupiah has no fractional unit)."""
    return Decimal(str(x)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


class Amounts(NamedTuple):
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal


def compute_amounts(subtotal, discount=0, include_tax: bool = False, tax_rate=None) -> Amounts:
    """
    total = max(0, subtotal - discount) + tax

    The discount is kept as given for display; only the taxable base is
    floored at zero. Tax is rounded half-up to a whole unit.
    """
    subtotal = Decimal(str(subtotal))
    discount = Decimal(str(discount or 0))
    if subtotal < 0:
        raise ValueError("subtotal must not be negative")
    if discount < 0:
        raise ValueError("discount must not be negative")

    rate = Decimal(str(settings.TAX_RATE if tax_rate is None else tax_rate))
    final_subtotal = max(ZERO, subtotal - discount)
    tax = _money(final_subtotal * rate) if include_tax else ZERO
    return Amounts(subtotal=subtotal, discount=discount, tax=tax, total=final_subtotal + tax)


def line_subtotal(price, qty: int) -> Decimal:
    return Decimal(str(price)) * qty


def normalize_payment_method(method) -> PaymentMethod | None:
    """'  CASH ' -> PaymentMethod.CASH; anything unrecognised -> None."""
    if not isinstance(method, str):
        return None
    try:
        return PaymentMethod(method.strip().lower())
    except ValueError:
        return None
