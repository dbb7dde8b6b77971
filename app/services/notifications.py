from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.models.ministry_form import MinistryForm
from app.models.notification import Notification
from app.services.user_accounts import now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormNotice:
    recipient_id: int
    form_id: int
    type: str
    title: str
    message: str


def build_form_notices(form: MinistryForm, action: str, recipients: Iterable[int], note: str | None) -> list[FormNotice]:
    title, message = _NOTICE_TEXT[action](form, note)
    return [
        FormNotice(recipient_id=user_id, form_id=form.id, type=f"form_{action}", title=title, message=message)
        for user_id in recipients
    ]


def _approved_text(form: MinistryForm, note: str | None) -> tuple[str, str]:
    if form.status == "approved":
        return "Form approved", f"Form {form.form_number} received final approval."
    return "Form awaiting pastor approval", f"Form {form.form_number} was approved by a pillar and needs your review."


def _rejected_text(form: MinistryForm, note: str | None) -> tuple[str, str]:
    return "Form rejected", f"Form {form.form_number} was rejected: {note}"


def _queried_text(form: MinistryForm, note: str | None) -> tuple[str, str]:
    message = f"The pastor has a question about form {form.form_number}"
    return "Form queried", f"{message}: {note}" if note else f"{message}."


def _revoked_text(form: MinistryForm, note: str | None) -> tuple[str, str]:
    return "Decision revoked", f"A decision on form {form.form_number} was revoked; it is back awaiting pillar review."


_NOTICE_TEXT = {
    "approve": _approved_text,
    "reject": _rejected_text,
    "query": _queried_text,
    "revoke": _revoked_text,
}


def dispatch(db: Session, notices: list[FormNotice]) -> None:
    """Persist notices after the workflow transaction has committed.

    Delivery is best effort: a failure is logged and rolled back but never
    raised, the form's status change already stands.
    """

    if not notices:
        return
    try:
        for notice in notices:
            db.add(
                Notification(
                    user_id=notice.recipient_id,
                    form_id=notice.form_id,
                    type=notice.type,
                    title=notice.title,
                    message=notice.message,
                )
            )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "notification_dispatch_failed",
            extra={
                "form_id": notices[0].form_id,
                "recipients": [notice.recipient_id for notice in notices],
            },
        )
        return
    logger.info(
        "notifications_dispatched",
        extra={"form_id": notices[0].form_id, "count": len(notices)},
    )


def list_for_user(db: Session, user_id: int, limit: int) -> list[Notification]:
    return (
        db.query(Notification)
        .options(joinedload(Notification.form))
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def unread_count(db: Session, user_id: int) -> int:
    return db.query(Notification).filter(Notification.user_id == user_id, Notification.is_read.is_(False)).count()


def get_owned(db: Session, notification_id: int, user_id: int) -> Notification | None:
    return (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )


def mark_read(db: Session, notification: Notification) -> Notification:
    notification.is_read = True
    notification.read_at = now_utc()
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, user_id: int) -> int:
    count = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({"is_read": True, "read_at": now_utc()}, synchronize_session=False)
    )
    db.commit()
    return count
