import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from config import get_settings
from csv_utils import export_report_transactions
from database import session_scope
from periods import InvalidRange, Period, resolve_period
from schemas import ReportOut
from services import ReportService

logging.basicConfig(level=get_settings().log_level)

app = FastAPI(title="SpendWise Reports")


def get_db():
    with session_scope() as db:
        yield db


def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None),
) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing user identity")
    return x_user_id.strip()


def period_from_request(request: Request) -> Period:
    period_slug = request.query_params.get("period")
    start = request.query_params.get("start")
    end = request.query_params.get("end")
    try:
        return resolve_period(period_slug, start, end)
    except InvalidRange as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _build_report(db: Session, user_id: str, period: Period) -> ReportOut:
    try:
        return ReportService(db, user_id).build_report_for_period(period)
    except InvalidRange as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception("Error generating report")
        raise HTTPException(status_code=500, detail="Report generation failed") from exc


@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/api/reports", response_model=ReportOut)
def get_report(
    period: Period = Depends(period_from_request),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return _build_report(db, user_id, period)


@app.get("/api/reports/transactions.csv")
def export_report_csv(
    period: Period = Depends(period_from_request),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    report = _build_report(db, user_id, period)
    content = export_report_transactions(report.transactions)
    filename = f"transactions_{period.start.isoformat()}_{period.end.isoformat()}.csv"
    logging.info(
        f"report_exported: user={user_id} period={period.start}to{period.end} "
        f"rows={len(report.transactions)}"
    )
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
