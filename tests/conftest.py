import json
from datetime import date, datetime, timezone

import pytest
from sqlmodel import Session

from starquest.ops import StructuredLogger
from starquest.persistence import (
    ChildBalance,
    CreditSettlement,
    CreditTransaction,
    Family,
    Quest,
    Redemption,
    SqlActivityStore,
    StarTransaction,
    User,
    create_db_and_tables,
    make_engine,
)

FAMILY_ID = "fam-lee"


def utc(*parts: int) -> datetime:
    return datetime(*parts, tzinfo=timezone.utc)


@pytest.fixture()
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'starquest.db'}")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


def seed_family(engine) -> None:
    """Lee family: Ava is active in the week of 2026-02-08, Milo only has pending requests."""

    approved = "approved"
    with Session(engine) as session:
        session.add(Family(id=FAMILY_ID, name="Lee"))
        session.add(Family(id="fam-empty", name="Quiet"))
        session.add(User(id="kid-ava", family_id=FAMILY_ID, name="Ava", role="child"))
        session.add(User(id="kid-milo", family_id=FAMILY_ID, name="Milo", role="child"))
        session.add(User(id="parent-1", family_id=FAMILY_ID, name="Pat", role="parent", email="pat@example.com"))
        session.add(User(id="parent-2", family_id=FAMILY_ID, name="Sam", role="parent"))
        session.add(Quest(id="q-homework", family_id=FAMILY_ID, name_en="Homework", name_zh="作业", stars=5))
        session.add(Quest(id="q-dishes", family_id=FAMILY_ID, name_en="Dishes", stars=3))

        # Week of 2026-02-08 .. 2026-02-14
        homework_days = [
            utc(2026, 2, 8, 0, 0, 0),
            utc(2026, 2, 9, 16, 0),
            utc(2026, 2, 10, 16, 0),
            utc(2026, 2, 14, 23, 59, 59, 999000),
        ]
        for created in homework_days:
            session.add(
                StarTransaction(
                    family_id=FAMILY_ID, child_id="kid-ava", quest_id="q-homework", stars=5, status=approved, created_at=created
                )
            )
        for created in (utc(2026, 2, 11, 18, 0), utc(2026, 2, 12, 18, 0)):
            session.add(
                StarTransaction(
                    family_id=FAMILY_ID, child_id="kid-ava", quest_id="q-dishes", stars=3, status=approved, created_at=created
                )
            )
        session.add(StarTransaction(family_id=FAMILY_ID, child_id="kid-ava", stars=54, status=approved, created_at=utc(2026, 2, 13, 9, 0)))
        session.add(StarTransaction(family_id=FAMILY_ID, child_id="kid-ava", stars=-10, status=approved, created_at=utc(2026, 2, 13, 10, 0)))
        session.add(StarTransaction(family_id=FAMILY_ID, child_id="kid-ava", stars=7, status="rejected", created_at=utc(2026, 2, 13, 11, 0)))
        session.add(StarTransaction(family_id=FAMILY_ID, child_id="kid-ava", stars=5, status="pending", created_at=utc(2026, 1, 2, 11, 0)))
        session.add(StarTransaction(family_id=FAMILY_ID, child_id="kid-ava", stars=100, status=approved, created_at=utc(2026, 2, 15, 0, 0)))
        session.add(Redemption(family_id=FAMILY_ID, child_id="kid-ava", stars_spent=20, status=approved, created_at=utc(2026, 2, 12, 12, 0)))
        session.add(Redemption(family_id=FAMILY_ID, child_id="kid-ava", stars_spent=50, status="rejected", created_at=utc(2026, 2, 12, 13, 0)))
        session.add(CreditTransaction(family_id=FAMILY_ID, child_id="kid-ava", transaction_type="credit_used", amount=15, created_at=utc(2026, 2, 9, 8, 0)))
        session.add(CreditTransaction(family_id=FAMILY_ID, child_id="kid-ava", transaction_type="credit_repaid", amount=5, created_at=utc(2026, 2, 10, 8, 0)))
        session.add(CreditTransaction(family_id=FAMILY_ID, child_id="kid-ava", transaction_type="interest_charged", amount=2, created_at=utc(2026, 2, 10, 9, 0)))
        session.add(ChildBalance(child_id="kid-ava", current_stars=120))

        session.add(StarTransaction(family_id=FAMILY_ID, child_id="kid-milo", stars=4, status="pending", created_at=utc(2026, 2, 10, 9, 0)))
        session.add(Redemption(family_id=FAMILY_ID, child_id="kid-milo", stars_spent=10, status="pending", created_at=utc(2026, 2, 10, 9, 30)))

        # Previous week 2026-02-01 .. 2026-02-07
        session.add(StarTransaction(family_id=FAMILY_ID, child_id="kid-ava", stars=40, status=approved, created_at=utc(2026, 2, 3, 9, 0)))
        session.add(Redemption(family_id=FAMILY_ID, child_id="kid-ava", stars_spent=60, status="fulfilled", created_at=utc(2026, 2, 4, 9, 0)))

        breakdown = [
            {"tier_order": 1, "min_debt": 0, "max_debt": 20, "debt_in_tier": 20, "interest_rate": 0.05, "interest_amount": 1},
            {"tier_order": 2, "min_debt": 20, "max_debt": None, "debt_in_tier": 10, "interest_rate": 0.2, "interest_amount": 2},
        ]
        session.add(
            CreditSettlement(
                family_id=FAMILY_ID,
                child_id="kid-ava",
                settlement_date=date(2026, 2, 15),
                debt_amount=30,
                interest_calculated=3,
                interest_breakdown=json.dumps(breakdown),
                credit_limit_before=100,
                credit_limit_after=90,
                credit_limit_adjustment=-10,
            )
        )
        session.add(
            CreditSettlement(
                family_id=FAMILY_ID,
                child_id="kid-milo",
                settlement_date=date(2026, 2, 15),
                credit_limit_before=50,
                credit_limit_after=50,
            )
        )
        session.commit()


@pytest.fixture()
def seeded_engine(engine):
    seed_family(engine)
    return engine


@pytest.fixture()
def store(seeded_engine) -> SqlActivityStore:
    return SqlActivityStore(seeded_engine)


@pytest.fixture()
def logger() -> StructuredLogger:
    return StructuredLogger()
