"""Reduce a family's raw activity into per-child period statistics."""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime
from typing import Dict, List, Optional

from .exceptions import FamilyNotFoundError, StarQuestError, UpstreamFetchError
from .i18n import localized_name
from .models import (
    ChildPeriodStats,
    ChildStatsResult,
    CreditTransactionType,
    PendingRecord,
    QuestSummary,
    RawPeriodData,
)
from .ops import StructuredLogger
from .persistence import ActivityStore

TOP_QUEST_LIMIT = 5


class ActivityAggregator:
    """Fetch activity for one family and window and build child statistics."""

    def __init__(self, store: ActivityStore, *, logger: StructuredLogger | None = None) -> None:
        self.store = store
        self.logger = logger or StructuredLogger()

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------
    def fetch_base_data(self, family_id: str, start: datetime, end: datetime) -> Optional[RawPeriodData]:
        """Return the raw data for ``[start, end]`` or ``None`` when a required read fails."""

        try:
            return self._fetch(family_id, start, end)
        except FamilyNotFoundError as exc:
            self.logger.log("report_family_missing", family_id=family_id, error=str(exc))
        except StarQuestError as exc:
            self.logger.log(
                "report_fetch_failed",
                family_id=family_id,
                start=start.isoformat(),
                end=end.isoformat(),
                error=str(exc),
            )
        return None

    def _fetch(self, family_id: str, start: datetime, end: datetime) -> RawPeriodData:
        family = self.store.get_family(family_id)
        if family is None:
            raise FamilyNotFoundError(f"Family '{family_id}' does not exist.")
        children = self.store.list_children(family_id)
        if not children:
            return RawPeriodData(family=family, children=[])

        child_ids = [child.child_id for child in children]
        return RawPeriodData(
            family=family,
            children=children,
            transactions=self.store.approved_star_transactions(family_id, child_ids, start, end),
            redemptions=self.store.spent_redemptions(family_id, child_ids, start, end),
            balances=self.store.balances(child_ids),
            credit_transactions=self.store.credit_transactions(family_id, child_ids, start, end),
            pending_stars=self._pending(family_id, "stars", lambda: self.store.pending_star_transactions(family_id, child_ids)),
            pending_redemptions=self._pending(
                family_id, "redemptions", lambda: self.store.pending_redemptions(family_id, child_ids)
            ),
        )

    def _pending(self, family_id: str, kind: str, read) -> List[PendingRecord]:
        # Pending counts are a live courtesy figure; a failed read counts as none.
        try:
            return read()
        except UpstreamFetchError as exc:
            self.logger.log("report_pending_fetch_failed", family_id=family_id, kind=kind, error=str(exc))
            return []

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------
    @staticmethod
    def build_child_stats(raw_data: RawPeriodData, locale: str) -> ChildStatsResult:
        return build_child_stats(raw_data, locale)


def _top_quests(transactions, locale: str) -> List[QuestSummary]:
    summaries: Dict[str, QuestSummary] = {}
    for tx in transactions:
        if tx.quest is None or tx.stars <= 0:
            continue
        summary = summaries.get(tx.quest.quest_id)
        if summary is None:
            summary = summaries[tx.quest.quest_id] = QuestSummary(
                name=localized_name(tx.quest, locale), stars=tx.stars, count=0
            )
        summary.count += 1
    ranked = sorted(summaries.values(), key=lambda quest: quest.count * quest.stars, reverse=True)
    return ranked[:TOP_QUEST_LIMIT]


def build_child_stats(raw_data: RawPeriodData, locale: str) -> ChildStatsResult:
    """Build per-child statistics and family totals from ``raw_data``."""

    transactions = defaultdict(list)
    for tx in raw_data.transactions or ():
        transactions[tx.child_id].append(tx)
    redeemed: Counter = Counter()
    for redemption in raw_data.redemptions or ():
        redeemed[redemption.child_id] += redemption.stars_spent
    borrowed: Counter = Counter()
    repaid: Counter = Counter()
    for credit in raw_data.credit_transactions or ():
        if credit.transaction_type == CreditTransactionType.CREDIT_USED.value:
            borrowed[credit.child_id] += credit.amount
        elif credit.transaction_type == CreditTransactionType.CREDIT_REPAID.value:
            repaid[credit.child_id] += credit.amount
    balances = {snapshot.child_id: snapshot.current_stars for snapshot in raw_data.balances or ()}
    pending = Counter(record.child_id for record in raw_data.pending_stars or ())
    pending.update(record.child_id for record in raw_data.pending_redemptions or ())

    per_child: List[ChildPeriodStats] = []
    for child in raw_data.children:
        child_tx = transactions.get(child.child_id, [])
        stars_earned = sum(tx.stars for tx in child_tx if tx.stars > 0)
        stars_deducted = sum(abs(tx.stars) for tx in child_tx if tx.stars < 0)
        per_child.append(
            ChildPeriodStats(
                child_id=child.child_id,
                name=child.name,
                stars_earned=stars_earned,
                stars_spent=redeemed[child.child_id] + stars_deducted,
                current_balance=balances.get(child.child_id) or 0,
                credit_borrowed=borrowed[child.child_id],
                credit_repaid=repaid[child.child_id],
                top_quests=_top_quests(child_tx, locale),
                pending_requests_count=pending[child.child_id],
            )
        )

    return ChildStatsResult(
        per_child=per_child,
        total_earned=sum(child.stars_earned for child in per_child),
        total_spent=sum(child.stars_spent for child in per_child),
    )


__all__ = ["ActivityAggregator", "TOP_QUEST_LIMIT", "build_child_stats"]
