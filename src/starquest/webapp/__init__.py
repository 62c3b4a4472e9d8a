"""StarQuest web surface (``uvicorn starquest.webapp:app``)."""
from __future__ import annotations

from .application import app, generate_markdown, get_report_service, list_periods, session_family_id

__all__ = ["app", "generate_markdown", "get_report_service", "list_periods", "session_family_id"]
