from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy.orm import Session

from app.models.user import User


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(value: str) -> str:
    return value.strip().lower()


def load_active_users(db: Session, user_ids: Iterable[int]) -> list[User]:
    ids = sorted(set(user_ids))
    if not ids:
        return []
    return db.query(User).filter(User.id.in_(ids), User.is_active.is_(True)).order_by(User.id).all()


def active_user_ids_with_role(db: Session, role: str) -> list[int]:
    rows = db.query(User.id).filter(User.role == role, User.is_active.is_(True)).order_by(User.id).all()
    return [row.id for row in rows]
