"""High level reporting service used by the web layer and scheduled jobs."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List, Optional, Sequence

from .aggregator import ActivityAggregator
from .assembler import ReportAssembler
from .config import (
    LOG_PATH,
    MARKDOWN_CONTENT_TYPE,
    REPORT_FROM_EMAIL,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USE_TLS,
    SMTP_USERNAME,
)
from .email_templates import email_subject, render_email_html
from .emailing import EmailClient
from .exceptions import InvalidPeriodError, StarQuestError
from .i18n import normalize_locale
from .models import MarkdownDownload, PeriodReport, PeriodType, ReportKind, SettlementNotice
from .ops import StructuredLogger
from .periods import as_utc, build_filename, last_completed_week, list_recent_periods, parse_period_type
from .persistence import ActivityStore, SqlActivityStore
from .rendering import render_markdown


class ReportService:
    """Coordinate assembly, rendering and delivery of family reports."""

    def __init__(
        self,
        store: ActivityStore | None = None,
        *,
        email_client: EmailClient | None = None,
        logger: StructuredLogger | None = None,
        sender: str = REPORT_FROM_EMAIL,
    ) -> None:
        self.logger = logger or StructuredLogger(path=LOG_PATH)
        self.store = store or SqlActivityStore()
        self.aggregator = ActivityAggregator(self.store, logger=self.logger)
        self.assembler = ReportAssembler(self.aggregator, logger=self.logger)
        self.email_client = email_client or EmailClient(
            SMTP_HOST,
            SMTP_PORT,
            username=SMTP_USERNAME,
            password=SMTP_PASSWORD,
            use_tls=SMTP_USE_TLS,
            logger=self.logger,
        )
        self.sender = sender

    # ------------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------------
    def recent_periods(self, period_type: PeriodType | str, locale: Optional[str] = None, *, reference_date: Optional[datetime] = None):
        return list_recent_periods(period_type, normalize_locale(locale), reference_date)

    def generate_markdown_download(
        self,
        family_id: str,
        period_type: PeriodType | str,
        period_start: datetime,
        period_end: datetime,
        locale: Optional[str] = None,
        *,
        generated_at: Optional[datetime] = None,
    ) -> Optional[MarkdownDownload]:
        """Assemble and render a Markdown report.

        Every period type except daily carries a previous-period comparison.

        Raises :class:`InvalidPeriodError` for malformed bounds and returns
        ``None`` when the report could not be assembled.
        """

        kind = parse_period_type(period_type)
        start, end = as_utc(period_start), as_utc(period_end)
        if start > end:
            raise InvalidPeriodError("periodStart must not be after periodEnd.")
        report = self.assembler.assemble_report(
            family_id,
            start,
            end,
            normalize_locale(locale),
            with_comparison=kind is not PeriodType.DAILY,
            period_type=kind,
        )
        if report is None:
            return None
        return MarkdownDownload(
            filename=build_filename(kind, start, end),
            content_type=MARKDOWN_CONTENT_TYPE,
            body=render_markdown(report, generated_at or datetime.now(timezone.utc)),
        )

    # ------------------------------------------------------------------
    # Email delivery
    # ------------------------------------------------------------------
    def _recipients(self, family_id: str, recipients: Optional[Sequence[str]]) -> List[str]:
        if recipients is not None:
            return list(recipients)
        try:
            return self.store.parent_emails(family_id)
        except StarQuestError as exc:
            self.logger.log("report_email_skipped", family_id=family_id, reason="recipient lookup failed", error=str(exc))
            return []

    def _deliver(
        self,
        family_id: str,
        report: PeriodReport | SettlementNotice | None,
        kind: ReportKind,
        recipients: Optional[Sequence[str]],
    ) -> bool:
        if report is None:
            self.logger.log("report_email_skipped", family_id=family_id, kind=kind.value, reason="report unavailable")
            return False
        to = self._recipients(family_id, recipients)
        if not to:
            self.logger.log("report_email_skipped", family_id=family_id, kind=kind.value, reason="no recipients")
            return False
        message = self.email_client.build_message(
            email_subject(report, kind),
            render_email_html(report, kind),
            sender=self.sender,
            recipients=to,
        )
        delivered = self.email_client.send(message)
        self.logger.log(
            "report_email_sent",
            family_id=family_id,
            kind=kind.value,
            recipients=len(to),
            delivered=delivered,
        )
        return delivered

    def send_weekly_report(
        self,
        family_id: str,
        locale: Optional[str] = None,
        *,
        reference_date: Optional[datetime] = None,
        recipients: Optional[Sequence[str]] = None,
    ) -> bool:
        """Email the last completed Sunday-to-Saturday week."""

        lang = normalize_locale(locale)
        week = last_completed_week(reference_date, locale=lang)
        report = self.assembler.assemble_report(
            family_id, week.start, week.end, lang, with_comparison=True, period_type=PeriodType.WEEKLY
        )
        return self._deliver(family_id, report, ReportKind.WEEKLY_REPORT, recipients)

    def send_monthly_report(
        self,
        family_id: str,
        locale: Optional[str] = None,
        *,
        reference_date: Optional[datetime] = None,
        recipients: Optional[Sequence[str]] = None,
    ) -> bool:
        report = self.assembler.assemble_monthly_report(family_id, reference_date, normalize_locale(locale))
        return self._deliver(family_id, report, ReportKind.MONTHLY_REPORT, recipients)

    def send_settlement_notice(
        self,
        family_id: str,
        settlement_date: date,
        locale: Optional[str] = None,
        *,
        recipients: Optional[Sequence[str]] = None,
    ) -> bool:
        notice = self.assembler.assemble_settlement_notice(family_id, settlement_date, normalize_locale(locale))
        return self._deliver(family_id, notice, ReportKind.SETTLEMENT_NOTICE, recipients)


__all__ = ["ReportService"]
