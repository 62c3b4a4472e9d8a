"""Combine period arithmetic and aggregation into report objects."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from typing import List, Optional

from .aggregator import ActivityAggregator, build_child_stats
from .exceptions import StarQuestError
from .formatting import percent_delta
from .models import (
    ChildSettlement,
    ChildStatsResult,
    PeriodReport,
    PeriodType,
    PreviousPeriodTotals,
    SettlementNotice,
)
from .ops import StructuredLogger
from .periods import as_utc, compute_previous_period_bounds, month_containing


class ReportAssembler:
    """Build :class:`PeriodReport` and :class:`SettlementNotice` objects.

    The primary window is mandatory: any failure there yields ``None``. The
    comparison window is optional and fetched alongside the primary one on a
    small thread pool; when it fails the report is returned without it.
    """

    def __init__(
        self,
        aggregator: ActivityAggregator,
        *,
        logger: StructuredLogger | None = None,
        max_workers: int = 2,
    ) -> None:
        self.aggregator = aggregator
        self.logger = logger or aggregator.logger
        self.max_workers = max_workers

    @property
    def store(self):
        return self.aggregator.store

    def _collect(self, family_id: str, start: datetime, end: datetime, locale: str):
        raw = self.aggregator.fetch_base_data(family_id, start, end)
        if raw is None:
            return None, None
        return raw, build_child_stats(raw, locale)

    def assemble_report(
        self,
        family_id: str,
        start: datetime,
        end: datetime,
        locale: str = "en",
        with_comparison: bool = False,
        period_type: PeriodType | str | None = None,
    ) -> Optional[PeriodReport]:
        """Return the report for ``[start, end]`` or ``None`` on a hard failure."""

        start = as_utc(start)
        end = as_utc(end)
        kind = PeriodType(period_type) if period_type is not None else None
        previous_window = None
        if with_comparison and kind is None:
            self.logger.log("report_comparison_skipped", family_id=family_id, reason="period type required")
        elif with_comparison:
            previous_window = compute_previous_period_bounds(kind, start, end, locale=locale)

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            primary_future = pool.submit(self._collect, family_id, start, end, locale)
            previous_future = None
            if previous_window is not None:
                previous_future = pool.submit(
                    self._collect, family_id, previous_window.start, previous_window.end, locale
                )
            raw, stats = primary_future.result()
            previous_stats: Optional[ChildStatsResult] = None
            if previous_future is not None:
                _, previous_stats = previous_future.result()

        if raw is None or stats is None:
            return None

        previous_period = None
        if previous_window is not None:
            if previous_stats is None:
                self.logger.log(
                    "report_comparison_skipped",
                    family_id=family_id,
                    reason="previous period unavailable",
                    start=previous_window.start.isoformat(),
                    end=previous_window.end.isoformat(),
                )
            else:
                previous_period = PreviousPeriodTotals(
                    total_earned=previous_stats.total_earned,
                    total_spent=previous_stats.total_spent,
                    earned_change=percent_delta(stats.total_earned, previous_stats.total_earned),
                    spent_change=percent_delta(stats.total_spent, previous_stats.total_spent),
                )

        report = PeriodReport(
            family_id=raw.family.family_id,
            family_name=raw.family.name,
            locale=locale,
            period_start=start,
            period_end=end,
            children=stats.per_child,
            previous_period=previous_period,
            period_type=kind,
        )
        self.logger.log(
            "report_assembled",
            family_id=family_id,
            period_type=kind.value if kind is not None else None,
            children=len(report.children),
            compared=previous_period is not None,
        )
        return report

    # ------------------------------------------------------------------
    # Scheduled report helpers
    # ------------------------------------------------------------------
    def _settlements(self, family_id: str, first_day: date, last_day: date) -> Optional[List[ChildSettlement]]:
        try:
            return self.store.settlements(family_id, first_day, last_day)
        except StarQuestError as exc:
            self.logger.log(
                "settlement_fetch_failed",
                family_id=family_id,
                first_day=first_day.isoformat(),
                last_day=last_day.isoformat(),
                error=str(exc),
            )
            return None

    def assemble_settlement_notice(
        self, family_id: str, settlement_date: date, locale: str = "en"
    ) -> Optional[SettlementNotice]:
        """Collect the precomputed settlement rows for ``settlement_date``."""

        try:
            family = self.store.get_family(family_id)
        except StarQuestError as exc:
            self.logger.log("settlement_fetch_failed", family_id=family_id, error=str(exc))
            return None
        if family is None:
            self.logger.log("report_family_missing", family_id=family_id)
            return None
        children = self._settlements(family_id, settlement_date, settlement_date)
        if children is None:
            return None
        return SettlementNotice(
            family_id=family.family_id,
            family_name=family.name,
            locale=locale,
            settlement_date=settlement_date,
            children=children,
        )

    def assemble_monthly_report(
        self, family_id: str, reference_date: Optional[datetime] = None, locale: str = "en"
    ) -> Optional[PeriodReport]:
        """Report for the month containing ``reference_date`` with comparison and settlements."""

        month = month_containing(reference_date or datetime.now(timezone.utc), locale=locale)
        report = self.assemble_report(
            family_id, month.start, month.end, locale, with_comparison=True, period_type=PeriodType.MONTHLY
        )
        if report is None:
            return None
        report.settlements = self._settlements(family_id, month.start.date(), month.end.date()) or []
        return report


__all__ = ["ReportAssembler"]
