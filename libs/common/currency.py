"""Money helpers.

Internal storage unit: rupees as fixed-point ``Decimal`` with two places
(``Numeric(12, 2)`` columns).

Never use floats for balances or fees: every amount that enters the ledger
goes through :func:`to_money` first.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

# ─── constants ───────────────────────────────────────────────────────────────

MONEY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyLike = Union[Decimal, int, float, str]


# ─── conversion helpers ───────────────────────────────────────────────────────


def to_money(value: MoneyLike) -> Decimal:
    """Coerce to a two-place Decimal (round half-up).

    Floats go through ``str`` so that 0.1 becomes 0.10, not
    0.1000000000000000055511151231257827.
    """
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid money amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid money amount: {value!r}")
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def format_money(amount: MoneyLike, symbol: str = "₹") -> str:
    """Human-readable amount for notification copy, e.g. ``₹1,250.50``."""
    value = to_money(amount)
    sign = "-" if value < 0 else ""
    text = f"{abs(value):,.2f}"
    if text.endswith(".00"):
        text = text[:-3]
    return f"{sign}{symbol}{text}"
