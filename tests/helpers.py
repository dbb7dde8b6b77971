from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.user import User
from app.services.form_permissions import Actor


def make_user(session: Session, email: str, role: str, full_name: str | None = None, is_active: bool = True) -> User:
    user = User(email=email, full_name=full_name or email.split("@")[0].title(), role=role, is_active=is_active)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def actor_for(user: User) -> Actor:
    return Actor(id=user.id, role=user.role)
