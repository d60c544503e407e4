"""Money and commission calculator for vendor slices.

Pure functions, no shared state.  All amounts are ``Decimal`` values
quantized to the minor unit (``0.01``) with ``ROUND_HALF_UP``, so sums are
exact and independent of summation order, and calling ``compute_slice``
twice with the same inputs returns identical results.

Per slice::

    subtotal        = sum(line_total(price, quantity))
    tax             = round(taxable_subtotal * tax_rate)   # tax_included lines excluded
    commission      = round(subtotal * commission_rate)
    total           = subtotal + shipping + tax - discount
    vendor_earnings = total - commission                   # never negative
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, List, Sequence, Union

from modules.orders.exceptions import InvalidFinancials

MONEY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0.00")
ONE = Decimal("1")

Amount = Union[Decimal, int, str]


def to_money(value: Amount) -> Decimal:
    """Quantize to the minor unit using round-half-up."""
    try:
        return Decimal(str(value)).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise InvalidFinancials(f"Not a monetary amount: {value!r}.") from exc


def _rate(value: Amount, name: str) -> Decimal:
    try:
        rate = Decimal(str(value))
    except InvalidOperation as exc:
        raise InvalidFinancials(f"{name} is not a number: {value!r}.") from exc
    if rate < 0 or rate > ONE:
        raise InvalidFinancials(f"{name} must be between 0 and 1, got {rate}.")
    return rate


def _non_negative(value: Amount, name: str) -> Decimal:
    amount = to_money(value)
    if amount < 0:
        raise InvalidFinancials(f"{name} cannot be negative, got {amount}.")
    return amount


@dataclass(frozen=True)
class PricedLine:
    """The calculator's view of a line item."""

    price: Decimal
    quantity: int
    tax_included: bool = False


@dataclass(frozen=True)
class SliceFinancials:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    discount: Decimal
    commission: Decimal
    vendor_earnings: Decimal
    total: Decimal


def line_total(price: Amount, quantity: int) -> Decimal:
    if quantity < 1:
        raise InvalidFinancials(f"Quantity must be at least 1, got {quantity}.")
    unit_price = _non_negative(price, "price")
    return to_money(unit_price * quantity)


def compute_slice(
    lines: Iterable[PricedLine],
    shipping_fee: Amount = ZERO,
    tax_rate: Amount = ZERO,
    discount: Amount = ZERO,
    commission_rate: Amount = ZERO,
) -> SliceFinancials:
    """Compute the financial breakdown of one vendor slice.

    Raises:
        InvalidFinancials: negative amounts, rates outside ``[0, 1]``, an
            empty slice, or a discount large enough to make the vendor's
            earnings negative.
    """
    lines = list(lines)
    if not lines:
        raise InvalidFinancials("A vendor slice needs at least one line item.")

    shipping = _non_negative(shipping_fee, "shipping_fee")
    discount_amount = _non_negative(discount, "discount")
    tax_rate_value = _rate(tax_rate, "tax_rate")
    commission_rate_value = _rate(commission_rate, "commission_rate")

    subtotal = ZERO
    taxable = ZERO
    for line in lines:
        amount = line_total(line.price, line.quantity)
        subtotal += amount
        if not line.tax_included:
            taxable += amount

    tax = to_money(taxable * tax_rate_value)
    commission = to_money(subtotal * commission_rate_value)
    total = subtotal + shipping + tax - discount_amount
    vendor_earnings = total - commission

    if vendor_earnings < 0:
        raise InvalidFinancials(
            f"Vendor earnings would be negative ({vendor_earnings}): "
            f"subtotal={subtotal} shipping={shipping} tax={tax} "
            f"discount={discount_amount} commission={commission}."
        )

    return SliceFinancials(
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        discount=discount_amount,
        commission=commission,
        vendor_earnings=vendor_earnings,
        total=total,
    )


def allocate(amount: Amount, weights: Sequence[Amount]) -> List[Decimal]:
    """Split ``amount`` across ``weights`` proportionally.

    Shares are rounded down to the minor unit and the remainder goes to the
    heaviest weight (the first one on ties), so the parts always add up to
    ``amount`` exactly.  All-zero weights split evenly.
    """
    total_amount = _non_negative(amount, "amount")
    if not weights:
        if total_amount:
            raise InvalidFinancials("Cannot allocate an amount across no slices.")
        return []

    parsed = [Decimal(str(weight)) for weight in weights]
    if any(weight < 0 for weight in parsed):
        raise InvalidFinancials("Allocation weights cannot be negative.")
    if sum(parsed) == 0:
        parsed = [ONE] * len(parsed)

    weight_sum = sum(parsed)
    shares = [
        (total_amount * weight / weight_sum).quantize(MONEY_QUANTUM, rounding=ROUND_DOWN)
        for weight in parsed
    ]
    remainder = total_amount - sum(shares)
    if remainder:
        heaviest = parsed.index(max(parsed))
        shares[heaviest] += remainder
    return shares
