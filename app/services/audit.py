from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.ministry_form import FormAuditLog


def record_form_event(
    db: Session,
    *,
    action: str,
    actor_id: int | None,
    form_id: int | None = None,
    details: str | None = None,
) -> FormAuditLog:
    """Queue an audit row in the caller's transaction."""

    entry = FormAuditLog(form_id=form_id, user_id=actor_id, action=action, details=details)
    db.add(entry)
    return entry


def list_form_events(db: Session, form_id: int) -> list[FormAuditLog]:
    return (
        db.query(FormAuditLog)
        .filter(FormAuditLog.form_id == form_id)
        .order_by(FormAuditLog.created_at.asc(), FormAuditLog.id.asc())
        .all()
    )
