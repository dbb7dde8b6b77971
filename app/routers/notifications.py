from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.auth.deps import get_current_user
from app.core.config import settings
from app.core.db import get_db
from app.models.notification import Notification
from app.models.user import User
from app.schemas.notification import MarkAllReadOut, NotificationOut, UnreadCountOut
from app.services import notifications as notifications_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _serialize(notification: Notification) -> NotificationOut:
    form = notification.form
    return NotificationOut(
        id=notification.id,
        form_id=notification.form_id,
        form_number=form.form_number if form else None,
        form_status=form.status if form else None,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        is_read=notification.is_read,
        created_at=notification.created_at,
        read_at=notification.read_at,
    )


def _get_owned_or_404(db: Session, notification_id: int, user: User) -> Notification:
    notification = notifications_service.get_owned(db, notification_id, user.id)
    if not notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return notification


@router.get("", response_model=list[NotificationOut], status_code=status.HTTP_200_OK)
def list_notifications(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[NotificationOut]:
    items = notifications_service.list_for_user(db, user.id, settings.NOTIFICATION_PAGE_SIZE)
    return [_serialize(item) for item in items]


@router.get("/unread-count", response_model=UnreadCountOut, status_code=status.HTTP_200_OK)
def unread_count(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> UnreadCountOut:
    return UnreadCountOut(count=notifications_service.unread_count(db, user.id))


@router.put("/read-all", response_model=MarkAllReadOut, status_code=status.HTTP_200_OK)
def mark_all_read(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> MarkAllReadOut:
    return MarkAllReadOut(count=notifications_service.mark_all_read(db, user.id))


@router.put("/{notification_id:int}/read", response_model=NotificationOut, status_code=status.HTTP_200_OK)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> NotificationOut:
    notification = _get_owned_or_404(db, notification_id, user)
    return _serialize(notifications_service.mark_read(db, notification))


@router.delete("/{notification_id:int}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Response:
    notification = _get_owned_or_404(db, notification_id, user)
    db.delete(notification)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
