from datetime import date, datetime, timezone

from sqlmodel import Session

from starquest.aggregator import ActivityAggregator
from starquest.assembler import ReportAssembler
from starquest.exceptions import UpstreamFetchError
from starquest.models import PeriodType
from starquest.persistence import CreditSettlement, SqlActivityStore

from conftest import FAMILY_ID

WEEK_START = datetime(2026, 2, 8, tzinfo=timezone.utc)
WEEK_END = datetime(2026, 2, 14, 23, 59, 59, 999000, tzinfo=timezone.utc)


class PastOutageStore(SqlActivityStore):
    """Fails every windowed read that starts before ``cutoff``."""

    cutoff = WEEK_START

    def approved_star_transactions(self, family_id, child_ids, start, end):
        if start < self.cutoff:
            raise UpstreamFetchError("archive offline")
        return super().approved_star_transactions(family_id, child_ids, start, end)


class SettlementOutageStore(SqlActivityStore):
    def settlements(self, family_id, first_day, last_day):
        raise UpstreamFetchError("settlements offline")


def make_assembler(store, logger) -> ReportAssembler:
    return ReportAssembler(ActivityAggregator(store, logger=logger), logger=logger)


def test_report_with_comparison(store, logger) -> None:
    report = make_assembler(store, logger).assemble_report(
        FAMILY_ID, WEEK_START, WEEK_END, "en", with_comparison=True, period_type=PeriodType.WEEKLY
    )

    assert report is not None
    assert report.family_name == "Lee"
    assert report.period_type is PeriodType.WEEKLY
    assert report.total_stars_earned == sum(child.stars_earned for child in report.children) == 80
    assert report.total_stars_spent == 30
    previous = report.previous_period
    assert (previous.total_earned, previous.total_spent) == (40, 60)
    assert (previous.earned_change, previous.spent_change) == (100, -50)
    assert logger.events("report_assembled")[0]["compared"] is True


def test_report_without_comparison(store, logger) -> None:
    report = make_assembler(store, logger).assemble_report(FAMILY_ID, WEEK_START, WEEK_END, "en", with_comparison=False)

    assert report is not None
    assert report.previous_period is None
    assert report.period_type is None


def test_comparison_failure_is_soft(seeded_engine, logger) -> None:
    assembler = make_assembler(PastOutageStore(seeded_engine), logger)

    report = assembler.assemble_report(
        FAMILY_ID, WEEK_START, WEEK_END, "en", with_comparison=True, period_type="weekly"
    )

    assert report is not None
    assert report.total_stars_earned == 80
    assert report.previous_period is None
    (skipped,) = logger.events("report_comparison_skipped")
    assert skipped["start"].startswith("2026-02-01")
    assert skipped["reason"] == "previous period unavailable"


def test_comparison_without_period_type_is_logged(store, logger) -> None:
    report = make_assembler(store, logger).assemble_report(FAMILY_ID, WEEK_START, WEEK_END, "en", with_comparison=True)

    assert report is not None
    assert report.previous_period is None
    (skipped,) = logger.events("report_comparison_skipped")
    assert skipped == {**skipped, "family_id": FAMILY_ID, "reason": "period type required"}
    assert logger.events("report_assembled")[0]["compared"] is False


def test_primary_failure_is_hard(seeded_engine, logger) -> None:
    assembler = make_assembler(PastOutageStore(seeded_engine), logger)
    earlier_start = datetime(2026, 2, 1, tzinfo=timezone.utc)
    earlier_end = datetime(2026, 2, 7, 23, 59, 59, 999000, tzinfo=timezone.utc)

    assert assembler.assemble_report(FAMILY_ID, earlier_start, earlier_end, "en", with_comparison=True, period_type="weekly") is None
    assert logger.events("report_assembled") == ()


def test_missing_family_yields_no_report(store, logger) -> None:
    assert make_assembler(store, logger).assemble_report("nobody", WEEK_START, WEEK_END, "en", True, "weekly") is None


def test_empty_family_yields_empty_report(store, logger) -> None:
    report = make_assembler(store, logger).assemble_report("fam-empty", WEEK_START, WEEK_END, "en", True, "weekly")

    assert report is not None
    assert report.children == []
    assert report.total_stars_earned == 0
    assert (report.previous_period.total_earned, report.previous_period.earned_change) == (0, 0)


def test_settlement_notice(store, logger) -> None:
    notice = make_assembler(store, logger).assemble_settlement_notice(FAMILY_ID, date(2026, 2, 15), "en")

    assert notice is not None
    assert [child.name for child in notice.children] == ["Ava", "Milo"]
    assert notice.total_interest_charged == 3
    ava = notice.children[0]
    assert ava.credit_limit_change == -10
    assert [tier.max_debt for tier in ava.interest_breakdown] == [20, None]
    assert ava.interest_breakdown[0].rate == 0.05


def test_settlement_notice_failures(seeded_engine, store, logger) -> None:
    assert make_assembler(store, logger).assemble_settlement_notice("nobody", date(2026, 2, 15)) is None
    assembler = make_assembler(SettlementOutageStore(seeded_engine), logger)
    assert assembler.assemble_settlement_notice(FAMILY_ID, date(2026, 2, 15)) is None
    assert logger.events("settlement_fetch_failed")


def test_monthly_report_includes_settlements(store, logger) -> None:
    report = make_assembler(store, logger).assemble_monthly_report(
        FAMILY_ID, datetime(2026, 2, 20, tzinfo=timezone.utc), "en"
    )

    assert report is not None
    assert report.period_type is PeriodType.MONTHLY
    assert report.period_start == datetime(2026, 2, 1, tzinfo=timezone.utc)
    assert report.previous_period is not None
    assert [item.name for item in report.settlements] == ["Ava", "Milo"]


def test_monthly_report_survives_settlement_outage(seeded_engine, logger) -> None:
    report = make_assembler(SettlementOutageStore(seeded_engine), logger).assemble_monthly_report(
        FAMILY_ID, datetime(2026, 2, 20, tzinfo=timezone.utc)
    )

    assert report is not None
    assert report.settlements == []


def add_settlement(engine, settlement_date: date, breakdown: str) -> None:
    with Session(engine) as session:
        session.add(
            CreditSettlement(
                family_id=FAMILY_ID,
                child_id="kid-ava",
                settlement_date=settlement_date,
                debt_amount=12,
                interest_calculated=1,
                interest_breakdown=breakdown,
            )
        )
        session.commit()


def test_malformed_settlement_breakdown_is_a_soft_failure(seeded_engine, store, logger) -> None:
    add_settlement(seeded_engine, date(2026, 2, 22), "{not json")
    assembler = make_assembler(store, logger)

    report = assembler.assemble_monthly_report(FAMILY_ID, datetime(2026, 2, 20, tzinfo=timezone.utc))

    assert report is not None
    assert report.settlements == []
    (failure,) = logger.events("settlement_fetch_failed")
    assert "not valid JSON" in failure["error"]
    assert assembler.assemble_settlement_notice(FAMILY_ID, date(2026, 2, 22)) is None


def test_settlement_breakdown_with_non_object_tiers_is_rejected(seeded_engine, store, logger) -> None:
    add_settlement(seeded_engine, date(2026, 3, 1), "[1, 2]")

    assert make_assembler(store, logger).assemble_settlement_notice(FAMILY_ID, date(2026, 3, 1)) is None
    (failure,) = logger.events("settlement_fetch_failed")
    assert "list of tiers" in failure["error"]
