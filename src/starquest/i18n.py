"""Internationalisation helpers for StarQuest reports."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional

from .config import DEFAULT_LOCALE, SUPPORTED_LOCALES


class Translator:
    """Store translations for short report and email strings.

    Lookups fall back from the requested locale to English and finally to the
    key itself, so a missing label never breaks rendering.
    """

    def __init__(self, default_locale: str = DEFAULT_LOCALE, *, translations: Optional[Mapping[str, Mapping[str, str]]] = None) -> None:
        self.default_locale = default_locale
        self._translations: Dict[str, Dict[str, str]] = {}
        if translations:
            for locale, mapping in translations.items():
                self._translations.setdefault(locale, {}).update(mapping)

    def set_translation(self, locale: str, key: str, value: str) -> None:
        self._translations.setdefault(locale, {})[key] = value

    def translate(self, key: str, *, locale: Optional[str] = None) -> str:
        target_locale = locale or self.default_locale
        value = self._translations.get(target_locale, {}).get(key)
        if value:
            return value
        return self._translations.get(self.default_locale, {}).get(key) or key

    def available_locales(self) -> tuple[str, ...]:
        return tuple(sorted(self._translations))


COMMON = Translator(
    translations={
        "en": {
            "brandName": "StarQuest",
            "companyName": "Beluga Tempo",
            "unsubscribeText": "To manage your email preferences, visit Settings in the StarQuest app.",
            "footerNote": "This is an automated email from StarQuest. Please do not reply directly to this email.",
            "viewInApp": "View in App",
            "stars": "stars",
            "times": "times",
            "unlimited": "Unlimited",
        },
        "zh-CN": {
            "brandName": "夺星大闯关",
            "companyName": "鲸律",
            "unsubscribeText": "如需管理邮件偏好设置，请访问 StarQuest 应用中的设置页面。",
            "footerNote": "这是 StarQuest 的自动邮件，请勿直接回复。",
            "viewInApp": "在应用中查看",
            "stars": "颗星星",
            "times": "次",
            "unlimited": "无限制",
        },
    }
)

MARKDOWN = Translator(
    translations={
        "en": {
            "title": "StarQuest Family Report",
            "period": "Period",
            "generated": "Generated",
            "familyOverview": "Family Overview",
            "metric": "Metric",
            "value": "Value",
            "totalEarned": "Total Stars Earned",
            "totalSpent": "Total Stars Spent",
            "net": "Net",
            "vsPrevious": "vs. Previous Period",
            "currentBalance": "Current Balance",
            "starsEarned": "Stars Earned",
            "starsSpent": "Stars Spent",
            "netStars": "Net Stars",
            "credit": "Credit",
            "creditBorrowed": "Credit Borrowed",
            "creditRepaid": "Credit Repaid",
            "topQuests": "Top Quests",
            "quest": "Quest",
            "times": "Times",
            "stars": "Stars",
            "pendingWarning": "pending requests need review",
            "earned": "earned",
            "spent": "spent",
            "daily": "Daily",
            "weekly": "Weekly",
            "monthly": "Monthly",
            "quarterly": "Quarterly",
            "yearly": "Yearly",
            "noChildren": "No children in this family yet.",
        },
        "zh-CN": {
            "title": "StarQuest 家庭报告",
            "period": "期间",
            "generated": "生成时间",
            "familyOverview": "家庭概览",
            "metric": "指标",
            "value": "数值",
            "totalEarned": "总获得星星",
            "totalSpent": "总消费星星",
            "net": "净值",
            "vsPrevious": "与上期对比",
            "currentBalance": "当前余额",
            "starsEarned": "获得星星",
            "starsSpent": "消费星星",
            "netStars": "净星星",
            "credit": "信用",
            "creditBorrowed": "信用借出",
            "creditRepaid": "信用偿还",
            "topQuests": "热门任务",
            "quest": "任务",
            "times": "次数",
            "stars": "星星",
            "pendingWarning": "个待审请求需要处理",
            "earned": "获得",
            "spent": "消费",
            "daily": "每日",
            "weekly": "每周",
            "monthly": "每月",
            "quarterly": "每季度",
            "yearly": "每年",
            "noChildren": "家庭中还没有孩子。",
        },
    }
)

ACTIVITY_EMAIL = Translator(
    translations={
        "en": {
            "weeklySubject": "StarQuest Weekly Report",
            "monthlySubject": "StarQuest Monthly Report",
            "weekSummary": "Weekly Star Summary",
            "monthSummary": "Monthly Star Summary",
            "weekPeriodLabel": "Week of",
            "monthPeriodLabel": "Month of",
            "familyOverview": "Family Overview",
            "totalEarned": "Total Earned",
            "totalSpent": "Total Spent",
            "starsEarned": "Stars Earned",
            "starsSpent": "Stars Spent",
            "netChange": "Net Change",
            "currentBalance": "Current Balance",
            "topQuests": "Top Completed Quests",
            "creditActivity": "Credit Activity",
            "borrowed": "Borrowed",
            "repaid": "Repaid",
            "pendingRequests": "Pending Requests",
            "weekNoActivity": "No activity this week",
            "monthNoActivity": "No activity this month",
            "comparedToPrevious": "Compared to Previous Period",
            "settlementSection": "Credit Settlement",
            "debtAmount": "Debt Amount",
            "interestCharged": "Interest Charged",
            "creditLimitChange": "Credit Limit Change",
        },
        "zh-CN": {
            "weeklySubject": "夺星大闯关 周报",
            "monthlySubject": "夺星大闯关 月报",
            "weekSummary": "每周星星汇总",
            "monthSummary": "每月星星汇总",
            "weekPeriodLabel": "周期",
            "monthPeriodLabel": "月份",
            "familyOverview": "家庭总览",
            "totalEarned": "总获得",
            "totalSpent": "总消费",
            "starsEarned": "获得星星",
            "starsSpent": "消费星星",
            "netChange": "净变化",
            "currentBalance": "当前余额",
            "topQuests": "热门完成任务",
            "creditActivity": "信用活动",
            "borrowed": "借用",
            "repaid": "偿还",
            "pendingRequests": "待审批请求",
            "weekNoActivity": "本周无活动",
            "monthNoActivity": "本月无活动",
            "comparedToPrevious": "与上期相比",
            "settlementSection": "信用结算",
            "debtAmount": "债务金额",
            "interestCharged": "利息费用",
            "creditLimitChange": "信用额度变化",
        },
    }
)

SETTLEMENT_EMAIL = Translator(
    translations={
        "en": {
            "subject": "StarQuest Credit Settlement Notice",
            "title": "Credit Settlement Completed",
            "settlementDate": "Settlement Date",
            "debtAmount": "Debt Amount",
            "interestCharged": "Interest Charged",
            "creditLimitBefore": "Credit Limit (Before)",
            "creditLimitAfter": "Credit Limit (After)",
            "creditLimitChange": "Limit Change",
            "interestBreakdown": "Interest Breakdown",
            "tier": "Tier",
            "debtRange": "Debt Range",
            "rate": "Rate",
            "debtInTier": "Debt in Tier",
            "interestAmount": "Interest",
            "totalInterest": "Total Interest Charged",
            "noInterestCharged": "No interest was charged this period. All children had positive or zero balances.",
            "settlementExplanation": (
                "Interest is calculated based on each child's negative balance (debt) at settlement time. "
                "Credit limits may be adjusted based on repayment history."
            ),
        },
        "zh-CN": {
            "subject": "夺星大闯关 信用结算通知",
            "title": "信用结算已完成",
            "settlementDate": "结算日期",
            "debtAmount": "债务金额",
            "interestCharged": "利息费用",
            "creditLimitBefore": "信用额度（之前）",
            "creditLimitAfter": "信用额度（之后）",
            "creditLimitChange": "额度变化",
            "interestBreakdown": "利息明细",
            "tier": "档位",
            "debtRange": "债务范围",
            "rate": "利率",
            "debtInTier": "档位内债务",
            "interestAmount": "利息",
            "totalInterest": "总利息费用",
            "noInterestCharged": "本期未收取利息。所有孩子的余额为正数或零。",
            "settlementExplanation": "利息根据结算时每个孩子的负余额（债务）计算。信用额度可能根据还款历史进行调整。",
        },
    }
)


def normalize_locale(value: Optional[str]) -> str:
    """Map any requested locale onto a supported one (English by default)."""

    if value in SUPPORTED_LOCALES:
        return value  # type: ignore[return-value]
    return DEFAULT_LOCALE


def t(key: str, locale: Optional[str], catalog: Translator = COMMON) -> str:
    return catalog.translate(key, locale=locale)


def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def localized_name(record: Any, locale: Optional[str]) -> str:
    """Return ``name_zh`` for Chinese readers when present, else ``name_en``.

    ``record`` may be a mapping or any object with ``name_en``/``name_zh``
    attributes (quests, rewards, levels).
    """

    english = _field(record, "name_en") or ""
    if locale == "zh-CN":
        return _field(record, "name_zh") or english
    return english


# ---------------------------------------------------------------------------
# Date labels
# ---------------------------------------------------------------------------
_MONTHS_SHORT = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_MONTHS_LONG = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
_WEEKDAYS_LONG = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_WEEKDAYS_ZH = ("星期一", "星期二", "星期三", "星期四", "星期五", "星期六", "星期日")


def format_day(moment: date | datetime, locale: Optional[str]) -> str:
    """``Feb 15, 2026`` or ``2026年2月15日``."""

    if locale == "zh-CN":
        return f"{moment.year}年{moment.month}月{moment.day}日"
    return f"{_MONTHS_SHORT[moment.month - 1]} {moment.day}, {moment.year}"


def format_month(moment: date | datetime, locale: Optional[str]) -> str:
    """``February 2026`` or ``2026年2月``."""

    if locale == "zh-CN":
        return f"{moment.year}年{moment.month}月"
    return f"{_MONTHS_LONG[moment.month - 1]} {moment.year}"


def format_long_date(moment: date | datetime, locale: Optional[str]) -> str:
    """``Sunday, February 15, 2026`` or ``2026年2月15日星期日``."""

    if locale == "zh-CN":
        return f"{moment.year}年{moment.month}月{moment.day}日{_WEEKDAYS_ZH[moment.weekday()]}"
    return f"{_WEEKDAYS_LONG[moment.weekday()]}, {_MONTHS_LONG[moment.month - 1]} {moment.day}, {moment.year}"


__all__ = [
    "ACTIVITY_EMAIL",
    "COMMON",
    "MARKDOWN",
    "SETTLEMENT_EMAIL",
    "Translator",
    "format_day",
    "format_long_date",
    "format_month",
    "localized_name",
    "normalize_locale",
    "t",
]
