from datetime import date, datetime, timezone

import pytest

from starquest.emailing import EmailClient
from starquest.exceptions import InvalidPeriodError
from starquest.service import ReportService

from conftest import FAMILY_ID

WEEK_START = datetime(2026, 2, 8, tzinfo=timezone.utc)
WEEK_END = datetime(2026, 2, 14, 23, 59, 59, 999000, tzinfo=timezone.utc)
GENERATED = datetime(2026, 2, 15, 8, 0, tzinfo=timezone.utc)


@pytest.fixture()
def mailer(logger) -> EmailClient:
    return EmailClient(None, 25, use_tls=False, logger=logger)


@pytest.fixture()
def service(store, mailer, logger) -> ReportService:
    return ReportService(store, email_client=mailer, logger=logger, sender="reports@starquest.test")


def html_part(message) -> str:
    return message.get_body(preferencelist=("html",)).get_content()


def test_markdown_download(service: ReportService) -> None:
    download = service.generate_markdown_download(
        FAMILY_ID, "weekly", WEEK_START, WEEK_END, "en", generated_at=GENERATED
    )

    assert download is not None
    assert download.filename == "starquest-weekly-2026-02-08-to-2026-02-14.md"
    assert download.content_type == "text/markdown; charset=utf-8"
    assert download.body.startswith("# StarQuest Family Report — Lee")
    assert "| vs. Previous Period | ↑ +100.0% earned, ↓ -50.0% spent |" in download.body
    assert "**Generated:** 2026-02-15T08:00:00.000Z" in download.body


def test_markdown_download_rejects_bad_input(service: ReportService) -> None:
    with pytest.raises(InvalidPeriodError):
        service.generate_markdown_download(FAMILY_ID, "weekly", WEEK_END, WEEK_START)
    with pytest.raises(InvalidPeriodError):
        service.generate_markdown_download(FAMILY_ID, "fortnightly", WEEK_START, WEEK_END)


def test_markdown_download_for_unknown_family(service: ReportService) -> None:
    assert service.generate_markdown_download("nobody", "weekly", WEEK_START, WEEK_END) is None


def test_unknown_locale_falls_back_to_english(service: ReportService) -> None:
    download = service.generate_markdown_download(FAMILY_ID, "weekly", WEEK_START, WEEK_END, "fr", generated_at=GENERATED)

    assert "## Family Overview" in download.body


def test_weekly_email_uses_last_completed_week(service: ReportService, mailer: EmailClient, logger) -> None:
    sent = service.send_weekly_report(FAMILY_ID, reference_date=datetime(2026, 2, 18, 9, tzinfo=timezone.utc))

    assert sent is False
    (message,) = mailer.deliveries()
    assert message["Subject"] == "StarQuest Weekly Report — Lee"
    assert message["To"] == "pat@example.com"
    assert message["From"] == "reports@starquest.test"
    body = html_part(message)
    assert "Feb 8, 2026 - Feb 14, 2026" in body
    assert "+80" in body
    (event,) = logger.events("report_email_sent")
    assert event["kind"] == "weekly-report"
    assert event["delivered"] is False


def test_monthly_email(service: ReportService, mailer: EmailClient) -> None:
    sent = service.send_monthly_report(
        FAMILY_ID, "zh-CN", reference_date=datetime(2026, 2, 20, tzinfo=timezone.utc), recipients=["a@example.com"]
    )

    assert sent is False
    (message,) = mailer.deliveries()
    assert message["Subject"] == "夺星大闯关 月报 — Lee"
    assert "信用结算" in html_part(message)


def test_settlement_email(service: ReportService, mailer: EmailClient) -> None:
    assert service.send_settlement_notice(FAMILY_ID, date(2026, 2, 15)) is False

    (message,) = mailer.deliveries()
    assert message["Subject"] == "StarQuest Credit Settlement Notice — Lee"
    body = html_part(message)
    assert "Ava" in body
    assert "Milo" not in body


def test_email_skipped_without_report_or_recipients(service: ReportService, mailer: EmailClient, logger) -> None:
    assert service.send_settlement_notice("nobody", date(2026, 2, 15)) is False
    assert service.send_weekly_report(FAMILY_ID, recipients=[]) is False

    assert mailer.deliveries() == ()
    reasons = [event["reason"] for event in logger.events("report_email_skipped")]
    assert reasons == ["report unavailable", "no recipients"]


def test_recent_periods(service: ReportService) -> None:
    periods = service.recent_periods("quarterly", "en", reference_date=datetime(2026, 2, 15, tzinfo=timezone.utc))

    assert [period.label for period in periods] == ["Q1 2026", "Q4 2025", "Q3 2025", "Q2 2025"]


class AcceptingEmailClient(EmailClient):
    def __init__(self) -> None:
        super().__init__("smtp.starquest.test", 25, use_tls=False)
        self.accepted = []

    def send(self, message) -> bool:
        self.accepted.append(message)
        return True


def test_send_reports_true_only_when_accepted(store, logger) -> None:
    client = AcceptingEmailClient()
    service = ReportService(store, email_client=client, logger=logger, sender="reports@starquest.test")

    assert service.send_settlement_notice(FAMILY_ID, date(2026, 2, 15)) is True
    assert [message["To"] for message in client.accepted] == ["pat@example.com"]
    (event,) = logger.events("report_email_sent")
    assert event["delivered"] is True


def test_daily_download_has_no_comparison(service: ReportService, logger) -> None:
    day_start = datetime(2026, 2, 9, tzinfo=timezone.utc)
    day_end = datetime(2026, 2, 9, 23, 59, 59, 999000, tzinfo=timezone.utc)

    download = service.generate_markdown_download(FAMILY_ID, "daily", day_start, day_end, "en", generated_at=GENERATED)

    assert download.filename == "starquest-daily-2026-02-09.md"
    assert "| Total Stars Earned | +5 |" in download.body
    assert "vs. Previous Period" not in download.body
    (event,) = logger.events("report_assembled")
    assert event["compared"] is False
    assert logger.events("report_comparison_skipped") == ()
