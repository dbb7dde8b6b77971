from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.auth.deps import require_roles
from app.core.db import get_db
from app.models.ministry import ministry_pillars
from app.models.user import User
from app.schemas.user import UserCreate, UserOut, UserUpdate
from app.services.user_accounts import normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/users", tags=["admin"])

MANAGE_ROLES = ("admin",)


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _drop_pillar_assignments(db: Session, user: User) -> int:
    return db.execute(ministry_pillars.delete().where(ministry_pillars.c.user_id == user.id)).rowcount


@router.get("", response_model=list[UserOut], status_code=status.HTTP_200_OK)
def list_users(
    *,
    role: str | None = Query(None),
    active: bool | None = Query(None),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*MANAGE_ROLES)),
) -> list[UserOut]:
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if active is not None:
        query = query.filter(User.is_active.is_(active))
    return [UserOut.from_orm(user) for user in query.order_by(User.full_name.asc(), User.id.asc()).all()]


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*MANAGE_ROLES)),
) -> UserOut:
    email = normalize_email(payload.email)
    if db.query(User).filter(func.lower(User.email) == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with this email already exists")

    user = User(email=email, full_name=payload.full_name, role=payload.role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user_created", extra={"user_id": user.id, "role": user.role, "actor_id": current_user.id})
    return UserOut.from_orm(user)


@router.patch("/{user_id:int}", response_model=UserOut, status_code=status.HTTP_200_OK)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*MANAGE_ROLES)),
) -> UserOut:
    user = _get_user_or_404(db, user_id)
    fields_set = payload.__fields_set__

    if "full_name" in fields_set and payload.full_name is not None:
        cleaned = payload.full_name.strip()
        if not cleaned:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required")
        user.full_name = cleaned
    removed = 0
    if "role" in fields_set and payload.role is not None and payload.role != user.role:
        if user.id == current_user.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot change your own role")
        if user.role == "pillar":
            # Pillar assignments only make sense for pillars.
            removed = _drop_pillar_assignments(db, user)
        user.role = payload.role
    if "is_active" in fields_set and payload.is_active is not None and payload.is_active != user.is_active:
        if not payload.is_active:
            if user.id == current_user.id:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account")
            # Inactive users hold no pillar assignments.
            removed += _drop_pillar_assignments(db, user)
        user.is_active = payload.is_active

    db.commit()
    db.refresh(user)
    logger.info(
        "user_updated",
        extra={"user_id": user.id, "actor_id": current_user.id, "pillar_assignments_removed": removed},
    )
    return UserOut.from_orm(user)


@router.delete("/{user_id:int}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*MANAGE_ROLES)),
) -> Response:
    user = _get_user_or_404(db, user_id)
    if user.id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account")

    removed = _drop_pillar_assignments(db, user)
    user.is_active = False
    db.commit()
    logger.info(
        "user_deactivated",
        extra={"user_id": user.id, "actor_id": current_user.id, "pillar_assignments_removed": removed},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
