from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.auth.deps import get_current_user, require_roles
from app.core.db import get_db
from app.models.user import User
from app.schemas.event_type import EventTypeCreate, EventTypeOut, EventTypeUpdate
from app.services import event_types as event_types_service

router = APIRouter(prefix="/event-types", tags=["event-types"])
admin_router = APIRouter(prefix="/admin/event-types", tags=["admin"])

MANAGE_ROLES = ("admin",)


@router.get("", response_model=list[EventTypeOut], status_code=status.HTTP_200_OK)
def list_active_event_types(
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> list[EventTypeOut]:
    return [EventTypeOut.from_orm(item) for item in event_types_service.list_event_types(db, active_only=True)]


@admin_router.get("", response_model=list[EventTypeOut], status_code=status.HTTP_200_OK)
def list_event_types(
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*MANAGE_ROLES)),
) -> list[EventTypeOut]:
    return [EventTypeOut.from_orm(item) for item in event_types_service.list_event_types(db)]


@admin_router.post("", response_model=EventTypeOut, status_code=status.HTTP_201_CREATED)
def create_event_type(
    payload: EventTypeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*MANAGE_ROLES)),
) -> EventTypeOut:
    return EventTypeOut.from_orm(event_types_service.create_event_type(db, payload, current_user.id))


@admin_router.put("/{event_type_id:int}", response_model=EventTypeOut, status_code=status.HTTP_200_OK)
def update_event_type(
    event_type_id: int,
    payload: EventTypeUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*MANAGE_ROLES)),
) -> EventTypeOut:
    return EventTypeOut.from_orm(event_types_service.update_event_type(db, event_type_id, payload, current_user.id))


@admin_router.delete("/{event_type_id:int}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event_type(
    event_type_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*MANAGE_ROLES)),
) -> Response:
    event_types_service.delete_event_type(db, event_type_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
