"""Domain models used by the StarQuest reporting engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class PeriodType(str, Enum):
    """Granularities a report can be generated for."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class ReportKind(str, Enum):
    """Email bodies the renderer knows how to produce."""

    WEEKLY_REPORT = "weekly-report"
    MONTHLY_REPORT = "monthly-report"
    SETTLEMENT_NOTICE = "settlement-notice"


class CreditTransactionType(str, Enum):
    CREDIT_USED = "credit_used"
    CREDIT_REPAID = "credit_repaid"
    INTEREST_CHARGED = "interest_charged"


@dataclass(slots=True)
class Period:
    """An inclusive UTC window ``[start, end]`` of a fixed granularity."""

    type: PeriodType
    start: datetime
    end: datetime
    label: str = ""

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("Period start must not be after its end.")


# ---------------------------------------------------------------------------
# Raw activity records as read from the store
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class QuestRef:
    quest_id: str
    name_en: str
    name_zh: Optional[str] = None


@dataclass(slots=True)
class StarTransactionRecord:
    child_id: str
    stars: int
    status: str
    created_at: datetime
    quest: Optional[QuestRef] = None


@dataclass(slots=True)
class RedemptionRecord:
    child_id: str
    stars_spent: int
    status: str
    created_at: datetime


@dataclass(slots=True)
class CreditTransactionRecord:
    child_id: str
    transaction_type: str
    amount: int
    created_at: datetime


@dataclass(slots=True)
class BalanceSnapshot:
    child_id: str
    current_stars: int


@dataclass(slots=True)
class PendingRecord:
    child_id: str


@dataclass(slots=True)
class FamilyRef:
    family_id: str
    name: str


@dataclass(slots=True)
class ChildRef:
    child_id: str
    name: str


@dataclass(slots=True)
class RawPeriodData:
    """Everything fetched for one family and one window.

    The activity collections are ``None`` when the family has no children so
    downstream code can tell "nothing to fetch" apart from "fetched nothing".
    """

    family: FamilyRef
    children: List[ChildRef]
    transactions: Optional[List[StarTransactionRecord]] = None
    redemptions: Optional[List[RedemptionRecord]] = None
    balances: Optional[List[BalanceSnapshot]] = None
    credit_transactions: Optional[List[CreditTransactionRecord]] = None
    pending_stars: Optional[List[PendingRecord]] = None
    pending_redemptions: Optional[List[PendingRecord]] = None


# ---------------------------------------------------------------------------
# Aggregated statistics
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class QuestSummary:
    name: str
    stars: int
    count: int

    @property
    def total_stars(self) -> int:
        return self.stars * self.count


@dataclass(slots=True)
class ChildPeriodStats:
    """Per-child economy snapshot for a reporting window."""

    child_id: str
    name: str
    stars_earned: int = 0
    stars_spent: int = 0
    current_balance: int = 0
    credit_borrowed: int = 0
    credit_repaid: int = 0
    top_quests: List[QuestSummary] = field(default_factory=list)
    pending_requests_count: int = 0

    @property
    def net_stars(self) -> int:
        return self.stars_earned - self.stars_spent


@dataclass(slots=True)
class ChildStatsResult:
    per_child: List[ChildPeriodStats]
    total_earned: int
    total_spent: int


@dataclass(slots=True)
class PreviousPeriodTotals:
    """Totals of the preceding window plus whole-percent deltas against it."""

    total_earned: int
    total_spent: int
    earned_change: int = 0
    spent_change: int = 0


@dataclass(slots=True)
class InterestTierBreakdown:
    """One tier of a precomputed interest calculation."""

    tier_order: int
    min_debt: int
    max_debt: Optional[int]
    debt_in_tier: int
    rate: float
    interest_amount: int


@dataclass(slots=True)
class ChildSettlement:
    child_id: str
    name: str
    debt_amount: int
    interest_charged: int
    interest_breakdown: List[InterestTierBreakdown] = field(default_factory=list)
    credit_limit_before: int = 0
    credit_limit_after: int = 0
    credit_limit_change: int = 0


@dataclass(slots=True)
class PeriodReport:
    """Assembled report for one family and one window."""

    family_id: str
    family_name: str
    locale: str
    period_start: datetime
    period_end: datetime
    children: List[ChildPeriodStats] = field(default_factory=list)
    previous_period: Optional[PreviousPeriodTotals] = None
    period_type: Optional[PeriodType] = None
    settlements: List[ChildSettlement] = field(default_factory=list)

    @property
    def total_stars_earned(self) -> int:
        return sum(child.stars_earned for child in self.children)

    @property
    def total_stars_spent(self) -> int:
        return sum(child.stars_spent for child in self.children)


@dataclass(slots=True)
class SettlementNotice:
    """Precomputed settlement results for one family on one date."""

    family_id: str
    family_name: str
    locale: str
    settlement_date: date
    children: List[ChildSettlement] = field(default_factory=list)

    @property
    def total_interest_charged(self) -> int:
        return sum(child.interest_charged for child in self.children)


@dataclass(slots=True)
class MarkdownDownload:
    filename: str
    content_type: str
    body: str


__all__ = [
    "BalanceSnapshot",
    "ChildPeriodStats",
    "ChildRef",
    "ChildSettlement",
    "ChildStatsResult",
    "CreditTransactionRecord",
    "CreditTransactionType",
    "FamilyRef",
    "InterestTierBreakdown",
    "MarkdownDownload",
    "PendingRecord",
    "Period",
    "PeriodReport",
    "PeriodType",
    "PreviousPeriodTotals",
    "QuestRef",
    "QuestSummary",
    "RawPeriodData",
    "RedemptionRecord",
    "ReportKind",
    "SettlementNotice",
    "StarTransactionRecord",
]
