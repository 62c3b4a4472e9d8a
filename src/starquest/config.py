"""Configuration constants for the StarQuest reporting engine."""
from __future__ import annotations

import os
from typing import Tuple

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


SQLITE_FILE_NAME = os.environ.get("STARQUEST_SQLITE", "starquest.db")
SESSION_SECRET = os.environ.get("SESSION_SECRET", "change-this-session-secret")
APP_URL = os.environ.get("APP_URL", "https://starquest-kappa.vercel.app").rstrip("/")
LOG_PATH = os.environ.get("STARQUEST_LOG_PATH") or None

SMTP_HOST = os.environ.get("SMTP_HOST", "localhost")
SMTP_PORT = int(os.environ.get("SMTP_PORT", "587"))
SMTP_USERNAME = os.environ.get("SMTP_USERNAME") or None
SMTP_PASSWORD = os.environ.get("SMTP_PASSWORD") or None
SMTP_USE_TLS = _env_flag("SMTP_USE_TLS", True)
REPORT_FROM_EMAIL = os.environ.get("REPORT_FROM_EMAIL", "StarQuest <reports@starquest.app>")

SUPPORTED_LOCALES: Tuple[str, ...] = ("en", "zh-CN")
DEFAULT_LOCALE = "en"
MARKDOWN_CONTENT_TYPE = "text/markdown; charset=utf-8"
FILENAME_PREFIX = "starquest"

__all__ = [
    "SQLITE_FILE_NAME",
    "SESSION_SECRET",
    "APP_URL",
    "LOG_PATH",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USERNAME",
    "SMTP_PASSWORD",
    "SMTP_USE_TLS",
    "REPORT_FROM_EMAIL",
    "SUPPORTED_LOCALES",
    "DEFAULT_LOCALE",
    "MARKDOWN_CONTENT_TYPE",
    "FILENAME_PREFIX",
]
