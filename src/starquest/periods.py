"""Calendar arithmetic for report periods.

Every boundary is computed in UTC. A period starts at 00:00:00.000 of its
first day and ends at 23:59:59.999 of its last day, so consecutive periods
are separated by exactly one millisecond.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional

from .config import FILENAME_PREFIX
from .exceptions import InvalidPeriodError
from .i18n import format_day, format_month
from .models import Period, PeriodType

ONE_MS = timedelta(milliseconds=1)
END_OF_DAY = time(23, 59, 59, 999000)

RECENT_PERIOD_COUNTS: Dict[PeriodType, int] = {
    PeriodType.DAILY: 30,
    PeriodType.WEEKLY: 12,
    PeriodType.MONTHLY: 12,
    PeriodType.QUARTERLY: 4,
    PeriodType.YEARLY: 3,
}


def as_utc(moment: datetime) -> datetime:
    """Return ``moment`` as an aware UTC datetime; naive values are taken as UTC."""

    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def parse_instant(raw: str) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix accepted) into aware UTC."""

    value = raw.strip() if isinstance(raw, str) else ""
    if not value:
        raise InvalidPeriodError("Missing period boundary.")
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError as exc:
        raise InvalidPeriodError(f"Invalid date: {raw!r}") from exc


def parse_period_type(raw: str | PeriodType) -> PeriodType:
    try:
        return PeriodType(raw)
    except ValueError as exc:
        raise InvalidPeriodError(f"Invalid periodType: {raw!r}") from exc


def _day_start(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def _day_end(day: date) -> datetime:
    return datetime.combine(day, END_OF_DAY, tzinfo=timezone.utc)


def _shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    """Return ``(year, month)`` moved by ``offset`` months (month is 1-based)."""

    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def _month_span(year: int, month: int, months: int) -> tuple[datetime, datetime]:
    last_year, last_month = _shift_month(year, month, months - 1)
    last_day = calendar.monthrange(last_year, last_month)[1]
    return _day_start(date(year, month, 1)), _day_end(date(last_year, last_month, last_day))


def _sunday_on_or_before(day: date) -> date:
    # date.weekday(): Monday=0 ... Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def _quarter_index(month: int) -> int:
    return (month - 1) // 3


def period_label(period_type: PeriodType, start: datetime, end: datetime, locale: Optional[str] = "en") -> str:
    if period_type is PeriodType.DAILY:
        return format_day(start, locale)
    if period_type is PeriodType.WEEKLY:
        return f"{format_day(start, locale)} – {format_day(end, locale)}"
    if period_type is PeriodType.MONTHLY:
        return format_month(start, locale)
    if period_type is PeriodType.QUARTERLY:
        return f"Q{_quarter_index(start.month) + 1} {start.year}"
    return str(start.year)


def _bounds(period_type: PeriodType, reference: datetime) -> tuple[datetime, datetime]:
    day = reference.date()
    if period_type is PeriodType.DAILY:
        return _day_start(day), _day_end(day)
    if period_type is PeriodType.WEEKLY:
        sunday = _sunday_on_or_before(day)
        return _day_start(sunday), _day_end(sunday + timedelta(days=6))
    if period_type is PeriodType.MONTHLY:
        return _month_span(day.year, day.month, 1)
    if period_type is PeriodType.QUARTERLY:
        return _month_span(day.year, _quarter_index(day.month) * 3 + 1, 3)
    return _day_start(date(day.year, 1, 1)), _day_end(date(day.year, 12, 31))


def compute_period_bounds(period_type: PeriodType | str, reference_date: datetime, *, locale: Optional[str] = "en") -> Period:
    """Return the period of ``period_type`` that contains ``reference_date``."""

    kind = parse_period_type(period_type)
    start, end = _bounds(kind, as_utc(reference_date))
    return Period(kind, start, end, period_label(kind, start, end, locale))


def compute_previous_period_bounds(
    period_type: PeriodType | str,
    start: datetime,
    end: datetime,
    *,
    locale: Optional[str] = "en",
) -> Period:
    """Return the period immediately before ``[start, end]``.

    The result always ends exactly one millisecond before ``start``.
    """

    kind = parse_period_type(period_type)
    first = as_utc(start).date()
    if kind is PeriodType.DAILY:
        day = first - timedelta(days=1)
        prev_start, prev_end = _day_start(day), _day_end(day)
    elif kind is PeriodType.WEEKLY:
        prev_start = _day_start(first - timedelta(days=7))
        prev_end = _day_end(first - timedelta(days=1))
    elif kind is PeriodType.MONTHLY:
        year, month = _shift_month(first.year, first.month, -1)
        prev_start, prev_end = _month_span(year, month, 1)
    elif kind is PeriodType.QUARTERLY:
        year, month = _shift_month(first.year, first.month, -3)
        prev_start, prev_end = _month_span(year, month, 3)
    else:
        prev_start = _day_start(date(first.year - 1, 1, 1))
        prev_end = _day_end(date(first.year - 1, 12, 31))
    return Period(kind, prev_start, prev_end, period_label(kind, prev_start, prev_end, locale))


def list_recent_periods(
    period_type: PeriodType | str,
    locale: Optional[str] = "en",
    reference_date: Optional[datetime] = None,
    count: Optional[int] = None,
) -> List[Period]:
    """Return recent periods, newest first, starting with the one containing ``reference_date``."""

    kind = parse_period_type(period_type)
    total = RECENT_PERIOD_COUNTS[kind] if count is None else count
    if total <= 0:
        return []
    reference = as_utc(reference_date or datetime.now(timezone.utc))
    current = compute_period_bounds(kind, reference, locale=locale)
    periods = [current]
    while len(periods) < total:
        last = periods[-1]
        periods.append(compute_previous_period_bounds(kind, last.start, last.end, locale=locale))
    return periods


def build_filename(period_type: PeriodType | str, start: datetime, end: datetime) -> str:
    kind = parse_period_type(period_type)
    first = as_utc(start)
    last = as_utc(end)
    prefix = f"{FILENAME_PREFIX}-{kind.value}"
    if kind is PeriodType.DAILY:
        return f"{prefix}-{first:%Y-%m-%d}.md"
    if kind is PeriodType.WEEKLY:
        return f"{prefix}-{first:%Y-%m-%d}-to-{last:%Y-%m-%d}.md"
    if kind is PeriodType.MONTHLY:
        return f"{prefix}-{first:%Y-%m}.md"
    if kind is PeriodType.QUARTERLY:
        return f"{prefix}-{first.year}-Q{_quarter_index(first.month) + 1}.md"
    return f"{prefix}-{first.year}.md"


# ---------------------------------------------------------------------------
# "Current week" conventions
# ---------------------------------------------------------------------------
def week_containing(reference_date: Optional[datetime] = None, *, locale: Optional[str] = "en") -> Period:
    """Sunday-to-Saturday week that contains ``reference_date`` (period pickers)."""

    return compute_period_bounds(PeriodType.WEEKLY, reference_date or datetime.now(timezone.utc), locale=locale)


def last_completed_week(reference_date: Optional[datetime] = None, *, locale: Optional[str] = "en") -> Period:
    """Sunday-to-Saturday week before the one containing ``reference_date``.

    Scheduled reports use this so they never describe a week still in progress.
    """

    current = week_containing(reference_date, locale=locale)
    return compute_previous_period_bounds(PeriodType.WEEKLY, current.start, current.end, locale=locale)


def month_containing(reference_date: Optional[datetime] = None, *, locale: Optional[str] = "en") -> Period:
    return compute_period_bounds(PeriodType.MONTHLY, reference_date or datetime.now(timezone.utc), locale=locale)


def previous_month(reference_date: Optional[datetime] = None, *, locale: Optional[str] = "en") -> Period:
    current = month_containing(reference_date, locale=locale)
    return compute_previous_period_bounds(PeriodType.MONTHLY, current.start, current.end, locale=locale)


__all__ = [
    "ONE_MS",
    "RECENT_PERIOD_COUNTS",
    "as_utc",
    "build_filename",
    "compute_period_bounds",
    "compute_previous_period_bounds",
    "last_completed_week",
    "list_recent_periods",
    "month_containing",
    "parse_instant",
    "parse_period_type",
    "period_label",
    "previous_month",
    "week_containing",
]
