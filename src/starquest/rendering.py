"""Markdown rendering of assembled period reports."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from .formatting import change_arrow, format_percent_change, isoformat_ms, signed
from .i18n import MARKDOWN, t
from .models import ChildPeriodStats, PeriodReport

SectionBuilder = Callable[[ChildPeriodStats, str], Optional[str]]


def _label(key: str, locale: str) -> str:
    return t(key, locale, MARKDOWN)


def _cell(text: str) -> str:
    return text.replace("|", "\\|")


def _table(header: Sequence[str], separator: str, rows: Sequence[Sequence[str]]) -> List[str]:
    lines = ["| " + " | ".join(header) + " |", separator]
    lines.extend("| " + " | ".join(row) + " |" for row in rows)
    return lines


def _metric_table(rows: Sequence[Sequence[str]], locale: str) -> List[str]:
    return _table((_label("metric", locale), _label("value", locale)), "|--------|-------|", rows)


# ---------------------------------------------------------------------------
# Per-child optional sections
# ---------------------------------------------------------------------------
def _credit_section(child: ChildPeriodStats, locale: str) -> Optional[str]:
    if child.credit_borrowed <= 0 and child.credit_repaid <= 0:
        return None
    lines = [f"### {_label('credit', locale)}"]
    lines.extend(
        _metric_table(
            [
                (_label("creditBorrowed", locale), str(child.credit_borrowed)),
                (_label("creditRepaid", locale), str(child.credit_repaid)),
            ],
            locale,
        )
    )
    return "\n".join(lines)


def _top_quests_section(child: ChildPeriodStats, locale: str) -> Optional[str]:
    if not child.top_quests:
        return None
    lines = [f"### {_label('topQuests', locale)}"]
    lines.extend(
        _table(
            (_label("quest", locale), _label("times", locale), _label("stars", locale)),
            "|-------|-------|-------|",
            [(_cell(quest.name), str(quest.count), str(quest.stars)) for quest in child.top_quests],
        )
    )
    return "\n".join(lines)


def _pending_section(child: ChildPeriodStats, locale: str) -> Optional[str]:
    if child.pending_requests_count <= 0:
        return None
    return f"⚠️ {child.pending_requests_count} {_label('pendingWarning', locale)}"


CHILD_SECTIONS: List[SectionBuilder] = [_credit_section, _top_quests_section, _pending_section]


def _child_block(child: ChildPeriodStats, locale: str) -> str:
    head = [f"## {child.name}", f"**{_label('currentBalance', locale)}:** {child.current_balance} ⭐", ""]
    head.extend(
        _metric_table(
            [
                (_label("starsEarned", locale), f"+{child.stars_earned}"),
                (_label("starsSpent", locale), f"-{child.stars_spent}"),
                (_label("netStars", locale), signed(child.net_stars)),
            ],
            locale,
        )
    )
    fragments = ["\n".join(head)]
    fragments.extend(fragment for fragment in (build(child, locale) for build in CHILD_SECTIONS) if fragment)
    fragments.append("---")
    return "\n\n".join(fragments)


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------
def _comparison_row(report: PeriodReport, locale: str) -> Optional[List[str]]:
    previous = report.previous_period
    if previous is None:
        return None
    earned, spent = report.total_stars_earned, report.total_stars_spent
    summary = (
        f"{change_arrow(earned, previous.total_earned)} "
        f"{format_percent_change(earned, previous.total_earned)} {_label('earned', locale)}, "
        f"{change_arrow(spent, previous.total_spent)} "
        f"{format_percent_change(spent, previous.total_spent)} {_label('spent', locale)}"
    )
    return [_label("vsPrevious", locale), summary]


def _header(report: PeriodReport, locale: str, generated_at: datetime) -> str:
    span = f"{report.period_start:%Y-%m-%d} – {report.period_end:%Y-%m-%d}"
    if report.period_type is not None:
        span = f"{_label(report.period_type.value, locale)} | {span}"
    return "\n".join(
        [
            f"# {_label('title', locale)} — {report.family_name}",
            f"**{_label('period', locale)}:** {span}",
            f"**{_label('generated', locale)}:** {isoformat_ms(generated_at)}",
        ]
    )


def _overview(report: PeriodReport, locale: str) -> str:
    earned, spent = report.total_stars_earned, report.total_stars_spent
    rows = [
        [_label("totalEarned", locale), f"+{earned}"],
        [_label("totalSpent", locale), f"-{spent}"],
        [_label("net", locale), signed(earned - spent)],
    ]
    comparison = _comparison_row(report, locale)
    if comparison is not None:
        rows.append(comparison)
    return "\n".join([f"## {_label('familyOverview', locale)}", *_metric_table(rows, locale)])


def render_markdown(report: PeriodReport, generated_at: Optional[datetime] = None) -> str:
    """Render ``report`` as a Markdown document.

    ``generated_at`` defaults to the current UTC time; pass it explicitly for
    reproducible output.
    """

    locale = report.locale
    moment = generated_at or datetime.now(timezone.utc)
    blocks = [_header(report, locale, moment), _overview(report, locale)]
    if report.children:
        blocks.extend(_child_block(child, locale) for child in report.children)
    else:
        blocks.append(f"_{_label('noChildren', locale)}_")
    return "\n\n".join(blocks) + "\n"


__all__ = ["CHILD_SECTIONS", "render_markdown"]
