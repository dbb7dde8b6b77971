from __future__ import annotations

from datetime import date, datetime, time
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.models.ministry import Ministry
from app.models.ministry_form import FORM_STATUSES, FormAuditLog, MinistryForm
from app.models.user import User
from app.schemas.reports import FormStatsOut, ReportActivityItem, StalledFormItem
from app.services.user_accounts import now_utc

PENDING_STATUSES = ("pending_pillar", "pending_pastor")


def _range_bounds(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    start_dt = datetime.combine(start, time.min) if start else None
    end_dt = datetime.combine(end, time.max) if end else None
    return start_dt, end_dt


def _naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None) if value.tzinfo else value


def _waiting_since(form: MinistryForm) -> datetime | None:
    if form.status == "pending_pastor":
        return form.pillar_approved_at or form.updated_at
    return form.submitted_at or form.updated_at


def stalled_forms(db: Session, *, older_than_days: int, now: datetime | None = None) -> List[StalledFormItem]:
    """Pending forms waiting longer than ``older_than_days``.

    Forms whose ministry has no assigned pillars are always included: nobody
    can act on them until an admin assigns one.
    """

    now = _naive(now or now_utc())
    forms = (
        db.query(MinistryForm)
        .options(joinedload(MinistryForm.ministry).selectinload(Ministry.pillars))
        .filter(MinistryForm.status.in_(PENDING_STATUSES))
        .order_by(MinistryForm.id.asc())
        .all()
    )
    items: List[StalledFormItem] = []
    for form in forms:
        since = _waiting_since(form)
        days_waiting = (now - _naive(since)).days if since else 0
        unassigned = form.status == "pending_pillar" and not form.ministry.pillars
        if not unassigned and days_waiting < older_than_days:
            continue
        items.append(
            StalledFormItem(
                form_id=form.id,
                form_number=form.form_number,
                status=form.status,
                ministry_id=form.ministry_id,
                ministry_name=form.ministry.name,
                waiting_since=since,
                days_waiting=days_waiting,
                no_assigned_pillars=unassigned,
            )
        )
    return items


def _section_total(sections: dict | None) -> float:
    budget = (sections or {}).get("section7") or {}
    try:
        return float(budget.get("total_budget") or 0)
    except (AttributeError, TypeError, ValueError):
        return 0.0


def form_stats(db: Session) -> FormStatsOut:
    counts = dict.fromkeys(FORM_STATUSES, 0)
    for status_value, count in db.query(MinistryForm.status, func.count(MinistryForm.id)).group_by(MinistryForm.status):
        counts[status_value] = count
    approved_sections = db.query(MinistryForm.sections).filter(MinistryForm.status == "approved")
    return FormStatsOut(
        total_forms=sum(counts.values()),
        pending_forms=sum(counts[status_value] for status_value in PENDING_STATUSES),
        by_status=counts,
        approved_budget_total=sum(_section_total(row.sections) for row in approved_sections),
        total_ministries=db.query(Ministry).count(),
        active_ministries=db.query(Ministry).filter(Ministry.active.is_(True)).count(),
        total_users=db.query(User).count(),
        active_users=db.query(User).filter(User.is_active.is_(True)).count(),
    )


def form_activity(
    db: Session,
    *,
    start: date | None = None,
    end: date | None = None,
    limit: int = 50,
) -> List[ReportActivityItem]:
    start_dt, end_dt = _range_bounds(start, end)
    query = db.query(FormAuditLog, User).outerjoin(User, User.id == FormAuditLog.user_id)
    if start_dt:
        query = query.filter(FormAuditLog.created_at >= start_dt)
    if end_dt:
        query = query.filter(FormAuditLog.created_at <= end_dt)
    rows = query.order_by(FormAuditLog.created_at.desc(), FormAuditLog.id.desc()).limit(limit).all()
    return [
        ReportActivityItem(
            id=entry.id,
            action=entry.action,
            actor=actor.full_name if actor else None,
            detail=entry.details,
            occurred_at=entry.created_at,
            form_id=entry.form_id,
        )
        for entry, actor in rows
    ]
