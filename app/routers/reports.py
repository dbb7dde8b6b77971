from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.auth.deps import require_roles
from app.core.config import settings
from app.core.db import get_db
from app.models.user import User
from app.schemas.reports import FormStatsOut, ReportActivityItem, StalledFormItem
from app.services import reporting

router = APIRouter(prefix="/reports", tags=["Reports"])

REPORT_ROLES = ("admin", "pastor")


@router.get("/stats", response_model=FormStatsOut)
def form_stats(
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*REPORT_ROLES)),
) -> FormStatsOut:
    return reporting.form_stats(db)


@router.get("/stalled-forms", response_model=list[StalledFormItem])
def stalled_forms(
    older_than_days: int | None = Query(default=None, ge=0),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*REPORT_ROLES)),
) -> list[StalledFormItem]:
    days = settings.STALLED_FORM_DAYS if older_than_days is None else older_than_days
    return reporting.stalled_forms(db, older_than_days=days)


@router.get("/activity", response_model=list[ReportActivityItem])
def form_activity(
    start: date | None = Query(default=None, alias="from"),
    end: date | None = Query(default=None, alias="to"),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*REPORT_ROLES)),
) -> list[ReportActivityItem]:
    return reporting.form_activity(db, start=start, end=end, limit=limit)
