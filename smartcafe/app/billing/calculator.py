"""Subtotal, tax and total computation for orders and carts.

All arithmetic uses :class:`~decimal.Decimal` without intermediate rounding so
that repeated computation over the same order always produces the same value.
Currency rounding is applied only when an amount is presented, see
:func:`format_amount` and :meth:`BillTotals.rounded`.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Iterable, Mapping

DEFAULT_TAX_PERCENT = Decimal("5")
CENT = Decimal("0.01")
_HUNDRED = Decimal("100")
# Larger magnitudes are treated like non-numeric input.
MAX_MAGNITUDE = Decimal("1e12")


def _to_decimal(value: Any) -> Decimal | None:
    """Return ``value`` as a finite ``Decimal`` or ``None`` if not numeric.

    Values beyond :data:`MAX_MAGNITUDE` count as not numeric so that no later
    product or sum can overflow the decimal context.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    if not number.is_finite() or abs(number) > MAX_MAGNITUDE:
        return None
    return number


def coerce_price(value: Any) -> Decimal:
    """Price of a line item; missing or non-numeric counts as ``0``."""

    number = _to_decimal(value)
    return Decimal("0") if number is None else number


def coerce_quantity(value: Any) -> Decimal:
    """Quantity of a line item; missing or non-numeric counts as ``1``."""

    number = _to_decimal(value)
    return Decimal("1") if number is None else number


def coerce_tax_percent(value: Any, default: Decimal = DEFAULT_TAX_PERCENT) -> Decimal:
    number = _to_decimal(value)
    return default if number is None else number


def _field(item: Any, *names: str) -> Any:
    for name in names:
        if isinstance(item, Mapping):
            if name in item:
                return item[name]
        elif hasattr(item, name):
            return getattr(item, name)
    return None


def line_total(item: Any) -> Decimal:
    """Return ``price × quantity`` for a mapping or ``LineItem``-like object."""

    price = coerce_price(_field(item, "price"))
    qty = coerce_quantity(_field(item, "quantity", "qty"))
    return price * qty


def format_amount(amount: Decimal | float | int) -> str:
    """Render ``amount`` with two fraction digits, rounding half-up."""

    value = Decimal(str(amount))
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return str(value.quantize(CENT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class BillTotals:
    """Unrounded bill amounts plus the tax rate they were computed with."""

    subtotal: Decimal
    tax: Decimal
    total: Decimal
    tax_percent: Decimal

    def rounded(self) -> dict[str, str]:
        """Return the presentation form of every amount."""

        return {
            "subtotal": format_amount(self.subtotal),
            "tax": format_amount(self.tax),
            "total": format_amount(self.total),
            "tax_percent": format(self.tax_percent.normalize(), "f"),
        }


def compute_bill(items: Iterable[Any] | None, tax_percent: Any) -> BillTotals:
    """Compute subtotal, tax and total for ``items`` at ``tax_percent``.

    Each item is either a mapping with ``price`` and ``quantity`` (``qty`` is
    accepted as an alias) or an object exposing those attributes. Malformed
    entries never raise; they contribute with a ``0`` price or a ``1``
    quantity.

    >>> items = [{"price": 299, "quantity": 1}, {"price": 199, "quantity": 2}]
    >>> bill = compute_bill(items, 5)
    >>> bill.subtotal, bill.tax, bill.total
    (Decimal('697'), Decimal('34.85'), Decimal('731.85'))
    """

    rate = coerce_tax_percent(tax_percent)
    subtotal = sum((line_total(item) for item in items or ()), Decimal("0"))
    tax = subtotal * rate / _HUNDRED
    return BillTotals(subtotal=subtotal, tax=tax, total=subtotal + tax, tax_percent=rate)


def bill_for_order(order: Any, settings: Any = None) -> BillTotals:
    """Compute the bill of a persisted order.

    The order's own ``tax_percent`` (captured at placement) wins over the
    live settings rate, which in turn wins over :data:`DEFAULT_TAX_PERCENT`.
    """

    rate = _to_decimal(_field(order, "tax_percent", "taxPercent"))
    if rate is None and settings is not None:
        rate = _to_decimal(_field(settings, "tax_percent", "taxPercent"))
    return compute_bill(_field(order, "items"), rate)


__all__ = [
    "DEFAULT_TAX_PERCENT",
    "BillTotals",
    "bill_for_order",
    "coerce_price",
    "coerce_quantity",
    "coerce_tax_percent",
    "compute_bill",
    "format_amount",
    "line_total",
]
