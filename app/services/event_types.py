from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.event_type import EventType
from app.models.form_entry import FormEvent
from app.schemas.event_type import EventTypeCreate, EventTypeUpdate
from app.services.audit import record_form_event

logger = logging.getLogger(__name__)


def _get_event_type(db: Session, event_type_id: int) -> EventType:
    event_type = db.get(EventType, event_type_id)
    if not event_type:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event type not found")
    return event_type


def _ensure_unique_name(db: Session, name: str, exclude_id: int | None = None) -> None:
    query = db.query(EventType).filter(func.lower(EventType.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(EventType.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Event type already exists")


def list_event_types(db: Session, *, active_only: bool = False) -> list[EventType]:
    query = db.query(EventType)
    if active_only:
        query = query.filter(EventType.active.is_(True))
    return query.order_by(EventType.name.asc()).all()


def create_event_type(db: Session, payload: EventTypeCreate, actor_id: int) -> EventType:
    _ensure_unique_name(db, payload.name)
    event_type = EventType(name=payload.name, description=payload.description, active=payload.active)
    db.add(event_type)
    record_form_event(db, action="event_type_created", actor_id=actor_id, details=f"Created event type: {event_type.name}")
    db.commit()
    db.refresh(event_type)
    logger.info("event_type_created", extra={"event_type_id": event_type.id, "actor_id": actor_id})
    return event_type


def update_event_type(db: Session, event_type_id: int, payload: EventTypeUpdate, actor_id: int) -> EventType:
    event_type = _get_event_type(db, event_type_id)
    _ensure_unique_name(db, payload.name, exclude_id=event_type.id)

    event_type.name = payload.name
    event_type.description = payload.description
    event_type.active = payload.active

    record_form_event(db, action="event_type_updated", actor_id=actor_id, details=f"Updated event type: {event_type.name}")
    db.commit()
    db.refresh(event_type)
    logger.info(
        "event_type_updated",
        extra={"event_type_id": event_type.id, "actor_id": actor_id, "active": event_type.active},
    )
    return event_type


def delete_event_type(db: Session, event_type_id: int, actor_id: int) -> None:
    event_type = _get_event_type(db, event_type_id)
    in_use = db.query(FormEvent).filter(FormEvent.event_type_id == event_type.id).count()
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete event type in use. Deactivate it instead.",
        )
    name = event_type.name
    db.delete(event_type)
    record_form_event(db, action="event_type_deleted", actor_id=actor_id, details=f"Deleted event type: {name}")
    db.commit()
    logger.info("event_type_deleted", extra={"event_type_id": event_type_id, "actor_id": actor_id})
