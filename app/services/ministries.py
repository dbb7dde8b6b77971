from __future__ import annotations

import logging

from fastapi import HTTPException, status
from slugify import slugify
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.models.ministry import Ministry
from app.models.ministry_form import MinistryForm
from app.models.user import User
from app.schemas.ministry import MinistryCreate, MinistryUpdate
from app.services.audit import record_form_event

logger = logging.getLogger(__name__)


def _get_ministry(db: Session, ministry_id: int) -> Ministry:
    ministry = (
        db.query(Ministry)
        .options(selectinload(Ministry.pillars))
        .filter(Ministry.id == ministry_id)
        .first()
    )
    if not ministry:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ministry not found")
    return ministry


def _ensure_unique_name(db: Session, name: str, exclude_id: int | None = None) -> None:
    query = db.query(Ministry).filter(func.lower(Ministry.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Ministry.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Ministry name already exists")


def _load_leader(db: Session, user_id: int | None) -> User | None:
    if user_id is None:
        return None
    leader = db.get(User, user_id)
    if not leader:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid ministry leader ID")
    return leader


def _load_pillars(db: Session, pillar_ids: list[int]) -> list[User]:
    if not pillar_ids:
        return []
    pillars = (
        db.query(User)
        .filter(User.id.in_(pillar_ids), User.role == "pillar", User.is_active.is_(True))
        .order_by(User.id)
        .all()
    )
    if len(pillars) != len(pillar_ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Some assigned pillar IDs are invalid")
    return pillars


def _unique_slug(db: Session, name: str, exclude_id: int | None = None) -> str:
    base = slugify(name) or "ministry"
    candidate = base
    suffix = 2
    while True:
        query = db.query(Ministry.id).filter(Ministry.slug == candidate)
        if exclude_id is not None:
            query = query.filter(Ministry.id != exclude_id)
        if not query.first():
            return candidate
        candidate = f"{base}-{suffix}"
        suffix += 1


def list_ministries(db: Session, *, active_only: bool = False) -> list[Ministry]:
    query = db.query(Ministry).options(selectinload(Ministry.pillars))
    if active_only:
        query = query.filter(Ministry.active.is_(True))
    return query.order_by(Ministry.name.asc()).all()


def create_ministry(db: Session, payload: MinistryCreate, actor_id: int) -> Ministry:
    _ensure_unique_name(db, payload.name)
    _load_leader(db, payload.ministry_leader_id)
    ministry = Ministry(
        name=payload.name,
        slug=_unique_slug(db, payload.name),
        description=payload.description,
        ministry_leader_id=payload.ministry_leader_id,
        active=payload.active,
    )
    ministry.pillars = _load_pillars(db, payload.assigned_pillar_ids)
    db.add(ministry)
    record_form_event(db, action="ministry_created", actor_id=actor_id, details=f"Created ministry: {ministry.name}")
    db.commit()
    db.refresh(ministry)
    logger.info("ministry_created", extra={"ministry_id": ministry.id, "actor_id": actor_id})
    return ministry


def update_ministry(db: Session, ministry_id: int, payload: MinistryUpdate, actor_id: int) -> Ministry:
    ministry = _get_ministry(db, ministry_id)
    _ensure_unique_name(db, payload.name, exclude_id=ministry.id)

    if payload.name != ministry.name:
        ministry.slug = _unique_slug(db, payload.name, exclude_id=ministry.id)
    ministry.name = payload.name
    ministry.description = payload.description
    _load_leader(db, payload.ministry_leader_id)
    ministry.ministry_leader_id = payload.ministry_leader_id
    ministry.active = payload.active
    ministry.pillars = _load_pillars(db, payload.assigned_pillar_ids)

    record_form_event(db, action="ministry_updated", actor_id=actor_id, details=f"Updated ministry: {ministry.name}")
    db.commit()
    db.refresh(ministry)
    logger.info(
        "ministry_updated",
        extra={"ministry_id": ministry.id, "actor_id": actor_id, "pillars": ministry.assigned_pillar_ids},
    )
    return ministry


def delete_ministry(db: Session, ministry_id: int, actor_id: int) -> None:
    ministry = _get_ministry(db, ministry_id)
    form_count = db.query(MinistryForm).filter(MinistryForm.ministry_id == ministry.id).count()
    if form_count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete ministry with existing forms. Deactivate it instead.",
        )
    name = ministry.name
    db.delete(ministry)
    record_form_event(db, action="ministry_deleted", actor_id=actor_id, details=f"Deleted ministry: {name}")
    db.commit()
    logger.info("ministry_deleted", extra={"ministry_id": ministry_id, "actor_id": actor_id})
