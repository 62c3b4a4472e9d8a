"""FastAPI routes that expose report downloads.

Authentication happens upstream; the only thing read from the session is the
``family_id`` the auth layer stored there.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.sessions import SessionMiddleware

from ..config import DEFAULT_LOCALE, SESSION_SECRET
from ..exceptions import InvalidPeriodError
from ..formatting import isoformat_ms
from ..i18n import normalize_locale
from ..periods import parse_instant, parse_period_type
from ..service import ReportService

# ---------------------------------------------------------------------------
# FastAPI application setup
# ---------------------------------------------------------------------------
app = FastAPI(title="StarQuest Reports")
app.add_middleware(
    SessionMiddleware,
    secret_key=SESSION_SECRET,
    same_site="lax",
    max_age=None,
)

_service: Optional[ReportService] = None


def get_report_service() -> ReportService:
    global _service
    if _service is None:
        _service = ReportService()
    return _service


def session_family_id(request: Request) -> Optional[str]:
    return request.session.get("family_id")


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@app.post("/api/reports/generate-markdown")
async def generate_markdown(
    request: Request,
    family_id: Optional[str] = Depends(session_family_id),
    service: ReportService = Depends(get_report_service),
) -> Response:
    if not family_id:
        return _error("Unauthorized", 401)
    try:
        payload: Dict[str, Any] = await request.json()
    except ValueError:
        return _error("Request body must be JSON.", 400)
    if not isinstance(payload, dict):
        return _error("Request body must be a JSON object.", 400)

    try:
        period_type = parse_period_type(payload.get("periodType") or "")
        start = parse_instant(payload.get("periodStart") or "")
        end = parse_instant(payload.get("periodEnd") or "")
    except InvalidPeriodError as exc:
        return _error(str(exc), 400)
    if start > end:
        return _error("periodStart must not be after periodEnd.", 400)
    locale = normalize_locale(payload.get("locale") or DEFAULT_LOCALE)

    download = await run_in_threadpool(
        service.generate_markdown_download, family_id, period_type, start, end, locale
    )
    if download is None:
        return _error("Failed to generate report", 500)
    return Response(
        content=download.body,
        media_type=download.content_type,
        headers={"Content-Disposition": f'attachment; filename="{download.filename}"'},
    )


@app.get("/api/reports/periods")
def list_periods(
    period_type: str = Query("weekly", alias="periodType"),
    locale: str = Query(DEFAULT_LOCALE),
    service: ReportService = Depends(get_report_service),
) -> Response:
    try:
        periods = service.recent_periods(period_type, locale)
    except InvalidPeriodError as exc:
        return _error(str(exc), 400)
    return JSONResponse(
        {
            "periodType": periods[0].type.value if periods else period_type,
            "periods": [
                {"label": period.label, "start": isoformat_ms(period.start), "end": isoformat_ms(period.end)}
                for period in periods
            ],
        }
    )


__all__ = ["app", "generate_markdown", "get_report_service", "list_periods", "session_family_id"]
