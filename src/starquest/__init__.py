"""StarQuest period reports: period arithmetic, aggregation and rendering."""

from .aggregator import ActivityAggregator, build_child_stats
from .assembler import ReportAssembler
from .email_templates import email_subject, render_email_html
from .emailing import EmailClient
from .exceptions import FamilyNotFoundError, InvalidPeriodError, StarQuestError, UpstreamFetchError
from .i18n import localized_name, normalize_locale, t
from .models import (
    ChildPeriodStats,
    ChildSettlement,
    InterestTierBreakdown,
    MarkdownDownload,
    Period,
    PeriodReport,
    PeriodType,
    PreviousPeriodTotals,
    QuestSummary,
    ReportKind,
    SettlementNotice,
)
from .ops import StructuredLogger
from .periods import (
    build_filename,
    compute_period_bounds,
    compute_previous_period_bounds,
    last_completed_week,
    list_recent_periods,
    week_containing,
)
from .persistence import ActivityStore, SqlActivityStore
from .rendering import render_markdown
from .service import ReportService

__all__ = [
    "ActivityAggregator",
    "ActivityStore",
    "ChildPeriodStats",
    "ChildSettlement",
    "EmailClient",
    "FamilyNotFoundError",
    "InterestTierBreakdown",
    "InvalidPeriodError",
    "MarkdownDownload",
    "Period",
    "PeriodReport",
    "PeriodType",
    "PreviousPeriodTotals",
    "QuestSummary",
    "ReportAssembler",
    "ReportKind",
    "ReportService",
    "SettlementNotice",
    "SqlActivityStore",
    "StarQuestError",
    "StructuredLogger",
    "UpstreamFetchError",
    "build_child_stats",
    "build_filename",
    "compute_period_bounds",
    "compute_previous_period_bounds",
    "email_subject",
    "last_completed_week",
    "list_recent_periods",
    "localized_name",
    "normalize_locale",
    "render_email_html",
    "render_markdown",
    "t",
    "week_containing",
]
