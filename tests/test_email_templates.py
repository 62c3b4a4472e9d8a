from datetime import date, datetime, timezone

import pytest

from starquest.email_templates import COLORS, email_subject, render_email_html
from starquest.models import (
    ChildPeriodStats,
    ChildSettlement,
    InterestTierBreakdown,
    PeriodReport,
    PeriodType,
    PreviousPeriodTotals,
    QuestSummary,
    ReportKind,
    SettlementNotice,
)

APP = "https://starquest.example"


def weekly_report(children, *, family_name="Lee", locale="en", previous=None) -> PeriodReport:
    return PeriodReport(
        family_id="fam-lee",
        family_name=family_name,
        locale=locale,
        period_start=datetime(2026, 2, 8, tzinfo=timezone.utc),
        period_end=datetime(2026, 2, 14, 23, 59, 59, 999000, tzinfo=timezone.utc),
        children=children,
        previous_period=previous,
        period_type=PeriodType.WEEKLY,
    )


def settlement_notice(children, *, locale="en") -> SettlementNotice:
    return SettlementNotice(
        family_id="fam-lee",
        family_name="Lee",
        locale=locale,
        settlement_date=date(2026, 2, 15),
        children=children,
    )


def tiered_settlement(name: str = "Ava") -> ChildSettlement:
    return ChildSettlement(
        child_id="kid-ava",
        name=name,
        debt_amount=30,
        interest_charged=3,
        interest_breakdown=[
            InterestTierBreakdown(1, 0, 20, 20, 0.05, 1),
            InterestTierBreakdown(2, 20, None, 10, 0.2, 2),
        ],
        credit_limit_before=100,
        credit_limit_after=90,
        credit_limit_change=-10,
    )


def test_weekly_report_layout() -> None:
    ava = ChildPeriodStats(
        "kid-ava",
        "Ava",
        stars_earned=80,
        stars_spent=30,
        current_balance=120,
        credit_borrowed=15,
        top_quests=[QuestSummary("Homework", 5, 12)],
        pending_requests_count=2,
    )
    html = render_email_html(weekly_report([ava]), ReportKind.WEEKLY_REPORT, app_url=APP)

    assert html.startswith("<!DOCTYPE html>")
    assert "Weekly Star Summary" in html
    assert "Week of: Feb 8, 2026 - Feb 14, 2026" in html
    assert "+80" in html and "-30" in html
    assert "Homework - 12 times (+60 stars)" in html
    assert "Borrowed: 15 stars" in html
    assert "Repaid" not in html
    assert "#FEF3C7" in html
    assert "Pending Requests:</strong> 2" in html
    assert f'href="{APP}/en/admin"' in html
    assert "&copy; 2026 Beluga Tempo | StarQuest" in html
    assert "Compared to Previous Period" not in html


def test_weekly_report_without_children_shows_no_activity() -> None:
    html = render_email_html(weekly_report([]), "weekly-report", app_url=APP)

    assert "No activity this week" in html


def test_weekly_comparison_block() -> None:
    child = ChildPeriodStats("kid", "Kai", stars_earned=120, stars_spent=50)
    html = render_email_html(
        weekly_report([child], previous=PreviousPeriodTotals(100, 60, 20, -17)), ReportKind.WEEKLY_REPORT, app_url=APP
    )

    assert "Compared to Previous Period" in html
    assert "↑ +20.0%" in html
    assert "↓ -16.7%" in html


def test_names_are_escaped() -> None:
    child = ChildPeriodStats("kid", "<b>Kai</b>", top_quests=[QuestSummary("Tidy & Sweep", 1, 1)])
    report = weekly_report([child], family_name="Lee & <Co>")
    html = render_email_html(report, ReportKind.WEEKLY_REPORT, app_url=APP)

    assert "<b>Kai</b>" not in html
    assert "&lt;b&gt;Kai&lt;/b&gt;" in html
    assert "Lee &amp; &lt;Co&gt;" in html
    assert "Tidy &amp; Sweep" in html


def test_subjects() -> None:
    report = weekly_report([])

    assert email_subject(report, ReportKind.WEEKLY_REPORT) == "StarQuest Weekly Report — Lee"
    assert email_subject(report, ReportKind.MONTHLY_REPORT) == "StarQuest Monthly Report — Lee"
    assert email_subject(settlement_notice([]), "settlement-notice") == "StarQuest Credit Settlement Notice — Lee"
    assert email_subject(weekly_report([], locale="zh-CN"), ReportKind.WEEKLY_REPORT) == "夺星大闯关 周报 — Lee"


def test_settlement_without_children_shows_no_interest_message() -> None:
    html = render_email_html(settlement_notice([]), ReportKind.SETTLEMENT_NOTICE, app_url=APP)

    assert "No interest was charged this period." in html
    assert "Sunday, February 15, 2026" in html


def test_settlement_hides_children_without_changes() -> None:
    untouched = ChildSettlement("kid-milo", "Milo", debt_amount=0, interest_charged=0)
    notice = settlement_notice([tiered_settlement(), untouched])
    html = render_email_html(notice, ReportKind.SETTLEMENT_NOTICE, app_url=APP)

    assert notice.total_interest_charged == 3
    assert "Ava" in html
    assert "Milo" not in html
    assert "No interest was charged" not in html
    assert f'color: {COLORS["error"]};">-3 stars' in html


def test_settlement_tier_table() -> None:
    html = render_email_html(settlement_notice([tiered_settlement()]), ReportKind.SETTLEMENT_NOTICE, app_url=APP)

    assert "0 - 20" in html
    assert "20 - Unlimited" in html
    assert "5.0%" in html and "20.0%" in html
    assert ">-2</td>" in html
    assert f'color: {COLORS["error"]};">-10 stars' in html


def test_positive_limit_change_uses_success_colour() -> None:
    raised = ChildSettlement("kid", "Kai", debt_amount=0, interest_charged=0, credit_limit_before=50, credit_limit_after=60, credit_limit_change=10)
    html = render_email_html(settlement_notice([raised, tiered_settlement()]), ReportKind.SETTLEMENT_NOTICE, app_url=APP)

    assert "Kai" in html
    assert f'color: {COLORS["success"]};">+10 stars' in html


def test_zero_total_interest_shows_message_instead_of_children() -> None:
    raised = ChildSettlement("kid", "Kai", debt_amount=0, interest_charged=0, credit_limit_change=10)
    html = render_email_html(settlement_notice([raised]), ReportKind.SETTLEMENT_NOTICE, app_url=APP)

    assert "No interest was charged this period." in html
    assert "Kai" not in html


def test_monthly_report_adds_settlement_summary() -> None:
    report = weekly_report([ChildPeriodStats("kid-ava", "Ava", stars_earned=5)])
    report.period_type = PeriodType.MONTHLY
    report.settlements = [tiered_settlement()]
    html = render_email_html(report, ReportKind.MONTHLY_REPORT, app_url=APP)

    assert "Monthly Star Summary" in html
    assert "Month of: February 2026" in html
    assert "Credit Settlement" in html


def test_chinese_settlement_notice() -> None:
    html = render_email_html(settlement_notice([tiered_settlement()], locale="zh-CN"), ReportKind.SETTLEMENT_NOTICE, app_url=APP)

    assert '<html lang="zh">' in html
    assert "信用结算已完成" in html
    assert "无限制" in html
    assert f'href="{APP}/zh-CN/admin"' in html


def test_mismatched_report_kind_is_rejected() -> None:
    with pytest.raises(TypeError):
        render_email_html(weekly_report([]), ReportKind.SETTLEMENT_NOTICE)
