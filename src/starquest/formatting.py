"""Number formatting helpers shared by the Markdown and email renderers."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Union

ONE_DECIMAL = Decimal("0.1")

NumberLike = Union[Decimal, int, float, str]


def to_decimal(value: NumberLike) -> Decimal:
    """Convert ``value`` to a :class:`~decimal.Decimal` without float noise."""

    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        return Decimal(value)
    raise TypeError(f"Unsupported number type: {type(value)!r}")


def percent_change(current: NumberLike, previous: NumberLike) -> Decimal:
    """Return the unrounded change from ``previous`` to ``current`` in percent.

    A zero baseline reports 100 when there is any current activity and 0
    otherwise, so a quiet previous period never divides by zero.
    """

    current_d = to_decimal(current)
    previous_d = to_decimal(previous)
    if previous_d == 0:
        return Decimal(100) if current_d > 0 else Decimal(0)
    return (current_d - previous_d) / previous_d * Decimal(100)


def percent_delta(current: NumberLike, previous: NumberLike) -> int:
    """Whole-number percent change, rounding halves toward positive infinity."""

    shifted = percent_change(current, previous) + Decimal("0.5")
    return int(shifted.to_integral_value(rounding=ROUND_FLOOR))


def format_percent_change(current: NumberLike, previous: NumberLike) -> str:
    """Return the change as ``+20.0%`` / ``-16.7%`` / ``+0.0%``.

    Only a period with no activity on either side renders unsigned ``0.0%``.
    """

    change = percent_change(current, previous)
    pct = change.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)
    if to_decimal(previous) == 0 and change == 0:
        return f"{pct}%"
    sign = "+" if change >= 0 else ""
    return f"{sign}{pct}%"


def change_arrow(current: NumberLike, previous: NumberLike) -> str:
    current_d = to_decimal(current)
    previous_d = to_decimal(previous)
    if current_d == 0 and previous_d == 0:
        return "→"
    return "↑" if current_d >= previous_d else "↓"


def signed(value: int) -> str:
    """Return ``value`` with an explicit ``+`` for zero and positives."""

    return f"+{value}" if value >= 0 else str(value)


def format_rate(rate: NumberLike) -> str:
    """Render a fractional rate (``0.05``) as a one-decimal percentage."""

    pct = (to_decimal(rate) * Decimal(100)).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)
    return f"{pct}%"


def isoformat_ms(moment: datetime) -> str:
    """Return ``moment`` as UTC ISO-8601 with millisecond precision and ``Z``."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


__all__ = [
    "change_arrow",
    "format_percent_change",
    "format_rate",
    "isoformat_ms",
    "percent_change",
    "percent_delta",
    "signed",
    "to_decimal",
]
