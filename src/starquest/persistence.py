"""Persistence and SQLModel definitions for the StarQuest activity store."""
from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Iterator, List, Optional, Protocol, Sequence

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Field, Session, SQLModel, create_engine, select

from .config import SQLITE_FILE_NAME
from .exceptions import UpstreamFetchError
from .models import (
    BalanceSnapshot,
    ChildRef,
    ChildSettlement,
    CreditTransactionRecord,
    FamilyRef,
    InterestTierBreakdown,
    PendingRecord,
    QuestRef,
    RedemptionRecord,
    StarTransactionRecord,
)
from .periods import as_utc

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_FULFILLED = "fulfilled"
SPENT_REDEMPTION_STATUSES = (STATUS_APPROVED, STATUS_FULFILLED)
ROLE_CHILD = "child"
ROLE_PARENT = "parent"


# ---------------------------------------------------------------------------
# Database models
# ---------------------------------------------------------------------------
def make_engine(url: str) -> Engine:
    return create_engine(url, echo=False, connect_args={"check_same_thread": False})


engine = make_engine(f"sqlite:///{SQLITE_FILE_NAME}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Family(SQLModel, table=True):
    id: str = Field(primary_key=True)
    name: str
    settlement_day: int = 0
    created_at: datetime = Field(default_factory=_utcnow)


class User(SQLModel, table=True):
    id: str = Field(primary_key=True)
    family_id: str = Field(index=True)
    name: str
    role: str = ROLE_CHILD  # parent|child
    email: Optional[str] = None


class Quest(SQLModel, table=True):
    id: str = Field(primary_key=True)
    family_id: str
    name_en: str
    name_zh: Optional[str] = None
    stars: int = 0


class StarTransaction(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    family_id: str = Field(index=True)
    child_id: str
    quest_id: Optional[str] = None
    stars: int
    status: str = STATUS_PENDING  # pending|approved|rejected
    created_at: datetime = Field(default_factory=_utcnow)


class Redemption(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    family_id: str = Field(index=True)
    child_id: str
    stars_spent: int
    status: str = STATUS_PENDING  # pending|approved|fulfilled|rejected
    created_at: datetime = Field(default_factory=_utcnow)


class ChildBalance(SQLModel, table=True):
    child_id: str = Field(primary_key=True)
    current_stars: int = 0


class CreditTransaction(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    family_id: str = Field(index=True)
    child_id: str
    transaction_type: str  # credit_used|credit_repaid|interest_charged
    amount: int
    created_at: datetime = Field(default_factory=_utcnow)


class CreditSettlement(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    family_id: str = Field(index=True)
    child_id: str
    settlement_date: date
    debt_amount: int = 0
    interest_calculated: int = 0
    interest_breakdown: Optional[str] = None  # JSON list of tiers
    credit_limit_before: int = 0
    credit_limit_after: int = 0
    credit_limit_adjustment: int = 0


def create_db_and_tables(bind: Engine | None = None) -> None:
    SQLModel.metadata.create_all(bind or engine)


def _parse_breakdown(raw: Optional[str]) -> List[InterestTierBreakdown]:
    """Decode the stored tier list; malformed payloads surface as fetch errors."""

    if not raw:
        return []
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise UpstreamFetchError("settlement breakdown is not valid JSON") from exc
    if not isinstance(payload, list) or not all(isinstance(tier, dict) for tier in payload):
        raise UpstreamFetchError("settlement breakdown must be a list of tiers")
    try:
        return [
            InterestTierBreakdown(
                tier_order=int(tier.get("tier_order") or 0),
                min_debt=int(tier.get("min_debt") or 0),
                max_debt=tier.get("max_debt"),
                debt_in_tier=int(tier.get("debt_in_tier") or 0),
                rate=float(tier.get("interest_rate") or 0),
                interest_amount=int(tier.get("interest_amount") or 0),
            )
            for tier in payload
        ]
    except (TypeError, ValueError) as exc:
        raise UpstreamFetchError("settlement breakdown has a malformed tier") from exc


# ---------------------------------------------------------------------------
# Read-only store
# ---------------------------------------------------------------------------
class ActivityStore(Protocol):
    """Read-only queries the aggregator needs from the upstream store."""

    def get_family(self, family_id: str) -> Optional[FamilyRef]: ...

    def list_children(self, family_id: str) -> List[ChildRef]: ...

    def approved_star_transactions(
        self, family_id: str, child_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[StarTransactionRecord]: ...

    def spent_redemptions(
        self, family_id: str, child_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[RedemptionRecord]: ...

    def balances(self, child_ids: Sequence[str]) -> List[BalanceSnapshot]: ...

    def credit_transactions(
        self, family_id: str, child_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[CreditTransactionRecord]: ...

    def pending_star_transactions(self, family_id: str, child_ids: Sequence[str]) -> List[PendingRecord]: ...

    def pending_redemptions(self, family_id: str, child_ids: Sequence[str]) -> List[PendingRecord]: ...

    def settlements(self, family_id: str, first_day: date, last_day: date) -> List[ChildSettlement]: ...

    def parent_emails(self, family_id: str) -> List[str]: ...


class SqlActivityStore:
    """:class:`ActivityStore` backed by the SQLModel tables above."""

    def __init__(self, bind: Engine | None = None) -> None:
        self.engine = bind or engine

    @contextmanager
    def _reading(self, what: str) -> Iterator[Session]:
        try:
            with Session(self.engine) as session:
                yield session
        except SQLAlchemyError as exc:
            raise UpstreamFetchError(f"Failed to fetch {what}: {exc}") from exc

    def get_family(self, family_id: str) -> Optional[FamilyRef]:
        with self._reading("family") as session:
            family = session.get(Family, family_id)
        if family is None:
            return None
        return FamilyRef(family_id=family.id, name=family.name)

    def list_children(self, family_id: str) -> List[ChildRef]:
        with self._reading("children") as session:
            rows = session.exec(
                select(User)
                .where(User.family_id == family_id)
                .where(User.role == ROLE_CHILD)
                .order_by(User.name)
            ).all()
        return [ChildRef(child_id=row.id, name=row.name) for row in rows]

    def approved_star_transactions(
        self, family_id: str, child_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[StarTransactionRecord]:
        query = (
            select(StarTransaction, Quest)
            .join(Quest, StarTransaction.quest_id == Quest.id, isouter=True)
            .where(StarTransaction.family_id == family_id)
            .where(StarTransaction.status == STATUS_APPROVED)
            .where(StarTransaction.created_at >= as_utc(start))
            .where(StarTransaction.created_at <= as_utc(end))
            .where(StarTransaction.child_id.in_(list(child_ids)))
            .order_by(StarTransaction.created_at)
        )
        with self._reading("star transactions") as session:
            rows = session.exec(query).all()
        return [
            StarTransactionRecord(
                child_id=tx.child_id,
                stars=tx.stars,
                status=tx.status,
                created_at=as_utc(tx.created_at),
                quest=QuestRef(quest.id, quest.name_en, quest.name_zh) if quest is not None else None,
            )
            for tx, quest in rows
        ]

    def spent_redemptions(
        self, family_id: str, child_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[RedemptionRecord]:
        query = (
            select(Redemption)
            .where(Redemption.family_id == family_id)
            .where(Redemption.status.in_(SPENT_REDEMPTION_STATUSES))
            .where(Redemption.created_at >= as_utc(start))
            .where(Redemption.created_at <= as_utc(end))
            .where(Redemption.child_id.in_(list(child_ids)))
        )
        with self._reading("redemptions") as session:
            rows = session.exec(query).all()
        return [
            RedemptionRecord(row.child_id, row.stars_spent, row.status, as_utc(row.created_at))
            for row in rows
        ]

    def balances(self, child_ids: Sequence[str]) -> List[BalanceSnapshot]:
        with self._reading("balances") as session:
            rows = session.exec(select(ChildBalance).where(ChildBalance.child_id.in_(list(child_ids)))).all()
        return [BalanceSnapshot(row.child_id, row.current_stars) for row in rows]

    def credit_transactions(
        self, family_id: str, child_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[CreditTransactionRecord]:
        query = (
            select(CreditTransaction)
            .where(CreditTransaction.family_id == family_id)
            .where(CreditTransaction.created_at >= as_utc(start))
            .where(CreditTransaction.created_at <= as_utc(end))
            .where(CreditTransaction.child_id.in_(list(child_ids)))
        )
        with self._reading("credit transactions") as session:
            rows = session.exec(query).all()
        return [
            CreditTransactionRecord(row.child_id, row.transaction_type, row.amount, as_utc(row.created_at))
            for row in rows
        ]

    def pending_star_transactions(self, family_id: str, child_ids: Sequence[str]) -> List[PendingRecord]:
        query = (
            select(StarTransaction.child_id)
            .where(StarTransaction.family_id == family_id)
            .where(StarTransaction.status == STATUS_PENDING)
            .where(StarTransaction.child_id.in_(list(child_ids)))
        )
        with self._reading("pending star transactions") as session:
            rows = session.exec(query).all()
        return [PendingRecord(child_id) for child_id in rows]

    def pending_redemptions(self, family_id: str, child_ids: Sequence[str]) -> List[PendingRecord]:
        query = (
            select(Redemption.child_id)
            .where(Redemption.family_id == family_id)
            .where(Redemption.status == STATUS_PENDING)
            .where(Redemption.child_id.in_(list(child_ids)))
        )
        with self._reading("pending redemptions") as session:
            rows = session.exec(query).all()
        return [PendingRecord(child_id) for child_id in rows]

    def settlements(self, family_id: str, first_day: date, last_day: date) -> List[ChildSettlement]:
        query = (
            select(CreditSettlement, User)
            .join(User, CreditSettlement.child_id == User.id, isouter=True)
            .where(CreditSettlement.family_id == family_id)
            .where(CreditSettlement.settlement_date >= first_day)
            .where(CreditSettlement.settlement_date <= last_day)
            .order_by(CreditSettlement.settlement_date, CreditSettlement.id)
        )
        with self._reading("settlements") as session:
            rows = session.exec(query).all()
        return [
            ChildSettlement(
                child_id=row.child_id,
                name=child.name if child is not None else "Unknown",
                debt_amount=row.debt_amount,
                interest_charged=row.interest_calculated,
                interest_breakdown=_parse_breakdown(row.interest_breakdown),
                credit_limit_before=row.credit_limit_before,
                credit_limit_after=row.credit_limit_after,
                credit_limit_change=row.credit_limit_adjustment,
            )
            for row, child in rows
        ]

    def parent_emails(self, family_id: str) -> List[str]:
        query = (
            select(User.email)
            .where(User.family_id == family_id)
            .where(User.role == ROLE_PARENT)
            .order_by(User.name)
        )
        with self._reading("parent contacts") as session:
            rows = session.exec(query).all()
        return [email for email in rows if email]


__all__ = [
    "ActivityStore",
    "ChildBalance",
    "CreditSettlement",
    "CreditTransaction",
    "Family",
    "Quest",
    "Redemption",
    "ROLE_CHILD",
    "ROLE_PARENT",
    "SPENT_REDEMPTION_STATUSES",
    "STATUS_APPROVED",
    "STATUS_FULFILLED",
    "STATUS_PENDING",
    "SqlActivityStore",
    "StarTransaction",
    "User",
    "create_db_and_tables",
    "engine",
    "make_engine",
]
