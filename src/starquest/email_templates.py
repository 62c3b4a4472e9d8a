"""HTML bodies and subjects for StarQuest report emails.

Every function here is pure: it reads only the report it is given and the
translation catalogs, and returns a string.
"""

from __future__ import annotations

from html import escape as html_escape
from typing import Callable, Dict, List, Optional, Union

from .config import APP_URL
from .formatting import change_arrow, format_percent_change, format_rate, percent_change, signed
from .i18n import ACTIVITY_EMAIL, COMMON, SETTLEMENT_EMAIL, format_day, format_long_date, format_month, t
from .models import ChildPeriodStats, ChildSettlement, InterestTierBreakdown, PeriodReport, ReportKind, SettlementNotice

COLORS: Dict[str, str] = {
    "primary": "#81D8D0",
    "primaryDark": "#5BC4BB",
    "secondary": "#1E3A5F",
    "background": "#F8FAFC",
    "white": "#FFFFFF",
    "text": "#1F2937",
    "textLight": "#6B7280",
    "border": "#E5E7EB",
    "success": "#10B981",
    "warning": "#F59E0B",
    "error": "#EF4444",
}
PENDING_BACKGROUND = "#FEF3C7"

EmailReport = Union[PeriodReport, SettlementNotice]

BASE_STYLES = f"""
body{{margin:0;padding:0;width:100%!important;}}
table{{border-collapse:collapse!important;}}
.email-container{{max-width:600px;margin:0 auto;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Arial,sans-serif;font-size:16px;line-height:1.6;color:{COLORS['text']};}}
.header{{background:linear-gradient(135deg,{COLORS['primary']} 0%,{COLORS['primaryDark']} 100%);padding:32px 24px;text-align:center;}}
.header-logo{{font-size:28px;font-weight:bold;color:{COLORS['white']};margin:0;}}
.header-tagline{{font-size:14px;color:rgba(255,255,255,0.9);margin-top:8px;}}
.content{{background-color:{COLORS['white']};padding:32px 24px;}}
.card{{background-color:{COLORS['background']};border-radius:8px;padding:20px;margin:16px 0;}}
.card-title{{font-size:18px;font-weight:600;color:{COLORS['secondary']};margin:0 0 12px 0;}}
.data-table{{width:100%;border-collapse:collapse;margin:16px 0;}}
.data-table th{{background-color:{COLORS['background']};padding:12px;text-align:left;font-size:12px;text-transform:uppercase;color:{COLORS['textLight']};border-bottom:2px solid {COLORS['border']};}}
.data-table td{{padding:12px;border-bottom:1px solid {COLORS['border']};}}
.btn{{display:inline-block;padding:12px 24px;background-color:{COLORS['primary']};color:{COLORS['white']}!important;text-decoration:none;border-radius:6px;font-weight:600;margin:16px 0;}}
.footer{{background-color:{COLORS['background']};padding:24px;text-align:center;}}
.footer p{{font-size:12px;color:{COLORS['textLight']};margin:4px 0;}}
.footer-brand{{font-weight:600;color:{COLORS['secondary']};}}
.text-center{{text-align:center;}}
.text-success{{color:{COLORS['success']};}}
.text-error{{color:{COLORS['error']};}}
@media only screen and (max-width:600px){{.content,.header,.footer{{padding:20px 16px!important;}}}}
""".strip()


def _common(key: str, locale: str) -> str:
    return t(key, locale, COMMON)


def _activity(key: str, locale: str) -> str:
    return t(key, locale, ACTIVITY_EMAIL)


def _settlement(key: str, locale: str) -> str:
    return t(key, locale, SETTLEMENT_EMAIL)


def base_layout(content: str, locale: str, *, year: int, app_url: str = APP_URL) -> str:
    """Wrap ``content`` in the branded header, footer and "view in app" button."""

    brand = html_escape(_common("brandName", locale))
    company = html_escape(_common("companyName", locale))
    lang = "zh" if locale == "zh-CN" else "en"
    link = html_escape(f"{app_url.rstrip('/')}/{locale}/admin")
    return f"""<!DOCTYPE html>
<html lang="{lang}">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{brand}</title>
  <style>{BASE_STYLES}</style>
</head>
<body style="background-color: {COLORS['background']}; margin: 0; padding: 20px 0;">
  <div class="email-container">
    <div class="header">
      <h1 class="header-logo">{brand}</h1>
      <p class="header-tagline">{company}</p>
    </div>
    <div class="content">
      {content}
      <div class="text-center">
        <a href="{link}" class="btn">{html_escape(_common('viewInApp', locale))}</a>
      </div>
    </div>
    <div class="footer">
      <p>{html_escape(_common('footerNote', locale))}</p>
      <p>{html_escape(_common('unsubscribeText', locale))}</p>
      <p class="footer-brand">&copy; {year} {company} | {brand}</p>
    </div>
  </div>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# Activity reports (weekly / monthly)
# ---------------------------------------------------------------------------
def _stat_cell(value: str, label: str, color: str, *, size: int = 24) -> str:
    return (
        '<td style="text-align: center; padding: 12px;">'
        f'<div style="font-size: {size}px; font-weight: bold; color: {color};">{value}</div>'
        f'<div style="font-size: 11px; color: {COLORS["textLight"]};">{html_escape(label)}</div>'
        "</td>"
    )


def _overview_card(report: PeriodReport, locale: str) -> str:
    family = html_escape(report.family_name)
    cells = "".join(
        [
            _stat_cell(f"+{report.total_stars_earned}", _activity("totalEarned", locale), COLORS["success"], size=32),
            _stat_cell(f"-{report.total_stars_spent}", _activity("totalSpent", locale), COLORS["warning"], size=32),
        ]
    )
    return (
        '<div class="card">'
        f'<h3 class="card-title">{html_escape(_activity("familyOverview", locale))} - {family}</h3>'
        f'<table width="100%" cellpadding="0" cellspacing="0" style="margin: 16px 0;"><tr>{cells}</tr></table>'
        "</div>"
    )


def _comparison_card(report: PeriodReport, locale: str) -> Optional[str]:
    previous = report.previous_period
    if previous is None:
        return None
    rows = []
    for label_key, current, before in (
        ("totalEarned", report.total_stars_earned, previous.total_earned),
        ("totalSpent", report.total_stars_spent, previous.total_spent),
    ):
        pct = percent_change(current, before)
        color = COLORS["success"] if pct >= 0 else COLORS["error"]
        display = format_percent_change(current, before)
        rows.append(
            "<tr>"
            f'<td style="font-weight: 600;">{html_escape(_activity(label_key, locale))}</td>'
            f'<td style="text-align: right;">{before} &rarr; {current}</td>'
            f'<td style="text-align: right; color: {color};">{change_arrow(current, before)} {display}</td>'
            "</tr>"
        )
    return (
        '<div class="card">'
        f'<h3 class="card-title">{html_escape(_activity("comparedToPrevious", locale))}</h3>'
        f'<table class="data-table"><tbody>{"".join(rows)}</tbody></table>'
        "</div>"
    )


def _credit_fragment(child: ChildPeriodStats, locale: str) -> Optional[str]:
    if child.credit_borrowed <= 0 and child.credit_repaid <= 0:
        return None
    stars = html_escape(_common("stars", locale))
    parts = []
    if child.credit_borrowed > 0:
        parts.append(
            f'<span style="color: {COLORS["warning"]};">'
            f'{html_escape(_activity("borrowed", locale))}: {child.credit_borrowed} {stars}</span>'
        )
    if child.credit_repaid > 0:
        parts.append(
            f'<span style="color: {COLORS["success"]};">'
            f'{html_escape(_activity("repaid", locale))}: {child.credit_repaid} {stars}</span>'
        )
    return (
        f'<div style="background-color: {COLORS["white"]}; padding: 12px; border-radius: 6px; margin-bottom: 12px;">'
        f'<strong style="font-size: 12px; color: {COLORS["textLight"]};">{html_escape(_activity("creditActivity", locale))}</strong>'
        f'<div style="margin-top: 8px;">{" | ".join(parts)}</div>'
        "</div>"
    )


def _top_quests_fragment(child: ChildPeriodStats, locale: str) -> Optional[str]:
    if not child.top_quests:
        return None
    times = html_escape(_common("times", locale))
    stars = html_escape(_common("stars", locale))
    items = "".join(
        f'<li style="margin: 4px 0;">{html_escape(quest.name)} - {quest.count} {times} (+{quest.total_stars} {stars})</li>'
        for quest in child.top_quests
    )
    return (
        f'<div style="background-color: {COLORS["white"]}; padding: 12px; border-radius: 6px; margin-bottom: 12px;">'
        f'<strong style="font-size: 12px; color: {COLORS["textLight"]};">{html_escape(_activity("topQuests", locale))}</strong>'
        f'<ul style="margin: 8px 0 0 0; padding-left: 20px;">{items}</ul>'
        "</div>"
    )


def _pending_fragment(child: ChildPeriodStats, locale: str) -> Optional[str]:
    if child.pending_requests_count <= 0:
        return None
    return (
        f'<div style="background-color: {PENDING_BACKGROUND}; padding: 12px; border-radius: 6px; '
        f'border-left: 4px solid {COLORS["warning"]};">'
        f'<strong>{html_escape(_activity("pendingRequests", locale))}:</strong> {child.pending_requests_count}'
        "</div>"
    )


CHILD_FRAGMENTS: List[Callable[[ChildPeriodStats, str], Optional[str]]] = [
    _credit_fragment,
    _top_quests_fragment,
    _pending_fragment,
]


def _child_card(child: ChildPeriodStats, locale: str) -> str:
    net_class = "text-success" if child.net_stars >= 0 else "text-error"
    stats = "".join(
        [
            _stat_cell(f"+{child.stars_earned}", _activity("starsEarned", locale), COLORS["success"]),
            _stat_cell(f"-{child.stars_spent}", _activity("starsSpent", locale), COLORS["warning"]),
            '<td style="text-align: center; padding: 12px;">'
            f'<div style="font-size: 24px; font-weight: bold;" class="{net_class}">{signed(child.net_stars)}</div>'
            f'<div style="font-size: 11px; color: {COLORS["textLight"]};">{html_escape(_activity("netChange", locale))}</div>'
            "</td>",
            _stat_cell(str(child.current_balance), _activity("currentBalance", locale), COLORS["primary"]),
        ]
    )
    fragments = [fragment for fragment in (build(child, locale) for build in CHILD_FRAGMENTS) if fragment]
    return (
        '<div class="card">'
        f'<h3 class="card-title">{html_escape(child.name)}</h3>'
        f'<table width="100%" cellpadding="0" cellspacing="0" style="margin-bottom: 16px;"><tr>{stats}</tr></table>'
        f'{"".join(fragments)}'
        "</div>"
    )


def _settlement_summary(settlements: List[ChildSettlement], locale: str) -> Optional[str]:
    if not settlements:
        return None
    stars = html_escape(_common("stars", locale))
    rows = "".join(
        "<tr>"
        f"<td>{html_escape(item.name)}</td>"
        f'<td style="text-align: right; color: {COLORS["error"]};">{item.debt_amount} {stars}</td>'
        f'<td style="text-align: right; color: {COLORS["warning"]};">-{item.interest_charged} {stars}</td>'
        f'<td style="text-align: right; color: {_limit_color(item.credit_limit_change)};">'
        f"{signed(item.credit_limit_change)} {stars}</td>"
        "</tr>"
        for item in settlements
    )
    head = "".join(
        f"<th>{html_escape(_activity(key, locale))}</th>"
        for key in ("settlementSection", "debtAmount", "interestCharged", "creditLimitChange")
    )
    return (
        '<div class="card">'
        f'<h3 class="card-title">{html_escape(_activity("settlementSection", locale))}</h3>'
        f'<table class="data-table"><thead><tr>{head}</tr></thead><tbody>{rows}</tbody></table>'
        "</div>"
    )


def _activity_body(report: PeriodReport, locale: str, *, monthly: bool) -> str:
    if monthly:
        title, period_label = _activity("monthSummary", locale), _activity("monthPeriodLabel", locale)
        period = format_month(report.period_start, locale)
        empty = _activity("monthNoActivity", locale)
    else:
        title, period_label = _activity("weekSummary", locale), _activity("weekPeriodLabel", locale)
        period = f"{format_day(report.period_start, locale)} - {format_day(report.period_end, locale)}"
        empty = _activity("weekNoActivity", locale)

    parts = [
        f'<h2 style="color: {COLORS["secondary"]}; margin-top: 0;">{html_escape(title)}</h2>',
        f'<p style="color: {COLORS["textLight"]};">{html_escape(period_label)}: {html_escape(period)}</p>',
        _overview_card(report, locale),
    ]
    comparison = _comparison_card(report, locale)
    if comparison:
        parts.append(comparison)
    if not report.children:
        parts.append(
            f'<div class="card"><p style="text-align: center; color: {COLORS["textLight"]};">{html_escape(empty)}</p></div>'
        )
    else:
        parts.extend(_child_card(child, locale) for child in report.children)
    if monthly:
        summary = _settlement_summary(report.settlements, locale)
        if summary:
            parts.append(summary)
    return "\n".join(parts)


# ---------------------------------------------------------------------------
# Settlement notice
# ---------------------------------------------------------------------------
def _limit_color(change: int) -> str:
    return COLORS["success"] if change >= 0 else COLORS["error"]


def _tier_row(tier: InterestTierBreakdown, locale: str) -> str:
    upper = html_escape(_common("unlimited", locale)) if tier.max_debt is None else str(tier.max_debt)
    return (
        "<tr>"
        f'<td style="padding: 8px;">{tier.tier_order}</td>'
        f'<td style="padding: 8px;">{tier.min_debt} - {upper}</td>'
        f'<td style="padding: 8px;">{format_rate(tier.rate)}</td>'
        f'<td style="padding: 8px;">{tier.debt_in_tier}</td>'
        f'<td style="padding: 8px; color: {COLORS["error"]};">-{tier.interest_amount}</td>'
        "</tr>"
    )


def _breakdown_table(child: ChildSettlement, locale: str) -> str:
    if not child.interest_breakdown:
        return ""
    head = "".join(
        f'<th style="padding: 8px;">{html_escape(_settlement(key, locale))}</th>'
        for key in ("tier", "debtRange", "rate", "debtInTier", "interestAmount")
    )
    rows = "".join(_tier_row(tier, locale) for tier in child.interest_breakdown)
    return (
        '<div style="margin-top: 16px;">'
        f'<strong style="font-size: 12px; color: {COLORS["textLight"]};">{html_escape(_settlement("interestBreakdown", locale))}</strong>'
        '<table class="data-table" style="margin-top: 8px; font-size: 14px;">'
        f"<thead><tr>{head}</tr></thead><tbody>{rows}</tbody></table>"
        "</div>"
    )


def _settlement_card(child: ChildSettlement, locale: str) -> str:
    stars = html_escape(_common("stars", locale))

    def row(key: str, value: str, style: str = "") -> str:
        return (
            f'<tr><td style="font-weight: 600;">{html_escape(_settlement(key, locale))}</td>'
            f'<td style="text-align: right;{style}">{value} {stars}</td></tr>'
        )

    rows = "".join(
        [
            row("debtAmount", str(child.debt_amount), f" color: {COLORS['error']};"),
            row("interestCharged", f"-{child.interest_charged}", f" color: {COLORS['warning']};"),
            row("creditLimitBefore", str(child.credit_limit_before)),
            row("creditLimitAfter", str(child.credit_limit_after)),
            row(
                "creditLimitChange",
                signed(child.credit_limit_change),
                f" font-weight: bold; color: {_limit_color(child.credit_limit_change)};",
            ),
        ]
    )
    return (
        '<div class="card">'
        f'<h3 class="card-title">{html_escape(child.name)}</h3>'
        f'<table class="data-table"><tbody>{rows}</tbody></table>'
        f"{_breakdown_table(child, locale)}"
        "</div>"
    )


def _settlement_body(notice: SettlementNotice, locale: str) -> str:
    total = notice.total_interest_charged
    total_color = COLORS["error"] if total > 0 else COLORS["success"]
    prefix = "-" if total > 0 else ""
    parts = [
        f'<h2 style="color: {COLORS["secondary"]}; margin-top: 0;">{html_escape(_settlement("title", locale))}</h2>',
        f'<p style="color: {COLORS["textLight"]};">{html_escape(_settlement("settlementDate", locale))}: '
        f"{html_escape(format_long_date(notice.settlement_date, locale))}</p>",
        f'<p style="font-size: 14px; color: {COLORS["textLight"]}; margin-bottom: 24px;">'
        f'{html_escape(_settlement("settlementExplanation", locale))}</p>',
        '<div class="card" style="text-align: center;">'
        f'<h3 class="card-title">{html_escape(_settlement("totalInterest", locale))}</h3>'
        f'<div style="font-size: 36px; font-weight: bold; color: {total_color};">'
        f'{prefix}{total} {html_escape(_common("stars", locale))}</div>'
        "</div>",
    ]
    if not notice.children or total == 0:
        parts.append(
            f'<div class="card"><p style="text-align: center; color: {COLORS["success"]};">'
            f'{html_escape(_settlement("noInterestCharged", locale))}</p></div>'
        )
    else:
        parts.extend(
            _settlement_card(child, locale)
            for child in notice.children
            if not (child.interest_charged == 0 and child.credit_limit_change == 0)
        )
    return "\n".join(parts)


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------
def _year(report: EmailReport) -> int:
    if isinstance(report, SettlementNotice):
        return report.settlement_date.year
    return report.period_end.year


def render_email_html(report: EmailReport, kind: ReportKind | str, *, app_url: str = APP_URL) -> str:
    """Return the complete HTML document for ``kind``."""

    kind = ReportKind(kind)
    locale = report.locale
    if kind is ReportKind.SETTLEMENT_NOTICE:
        if not isinstance(report, SettlementNotice):
            raise TypeError("Settlement notices render from a SettlementNotice.")
        body = _settlement_body(report, locale)
    else:
        if not isinstance(report, PeriodReport):
            raise TypeError("Activity reports render from a PeriodReport.")
        body = _activity_body(report, locale, monthly=kind is ReportKind.MONTHLY_REPORT)
    return base_layout(body, locale, year=_year(report), app_url=app_url)


SUBJECT_KEYS = {
    ReportKind.WEEKLY_REPORT: (ACTIVITY_EMAIL, "weeklySubject"),
    ReportKind.MONTHLY_REPORT: (ACTIVITY_EMAIL, "monthlySubject"),
    ReportKind.SETTLEMENT_NOTICE: (SETTLEMENT_EMAIL, "subject"),
}


def email_subject(report: EmailReport, kind: ReportKind | str) -> str:
    catalog, key = SUBJECT_KEYS[ReportKind(kind)]
    return f"{t(key, report.locale, catalog)} — {report.family_name}"


__all__ = ["COLORS", "base_layout", "email_subject", "render_email_html"]
