from __future__ import annotations

from sqlalchemy.orm import Session

import app.models  # noqa: F401
from app.core.db import Base, SessionLocal, engine
from app.models.event_type import EventType
from app.models.ministry import Ministry
from app.models.ministry_form import MinistryForm
from app.models.user import User
from app.schemas.form_entry import FormEventIn, FormGoalIn
from app.services import form_entries, form_workflow
from app.services.form_permissions import Actor

DEMO_USERS = [
    ("admin@example.com", "System Admin", "admin"),
    ("pastor@example.com", "Pastor Yonas", "pastor"),
    ("pillar.meron@example.com", "Meron Tadesse", "pillar"),
    ("pillar.samuel@example.com", "Samuel Bekele", "pillar"),
    ("youth.leader@example.com", "Hanna Girma", "ministry_leader"),
    ("choir.leader@example.com", "Dawit Alemu", "ministry_leader"),
]

# slug -> (name, leader email, pillar emails)
DEMO_MINISTRIES = {
    "youth-ministry": ("Youth Ministry", "youth.leader@example.com", ["pillar.meron@example.com"]),
    "choir": (
        "Choir",
        "choir.leader@example.com",
        ["pillar.meron@example.com", "pillar.samuel@example.com"],
    ),
    "outreach": ("Outreach", None, []),
}

DEMO_EVENT_TYPES = [
    ("Retreat", "Overnight or weekend gathering"),
    ("Conference", None),
    ("Fellowship", "Shared meal or social evening"),
    ("Outreach", "Community service and evangelism"),
]

DEMO_SECTIONS = {
    "section1": {"ministry_name": "Youth Ministry", "members": 45},
    "section2": {"mission": "Disciple the next generation", "vision": "Every teen connected"},
    "section3": {"programs": ["Friday fellowship", "Bible study"]},
    "section6": {"resources": ["Projector", "Transport"]},
    "section7": {"total_requested": 8200},
}


def ensure_user(db: Session, email: str, full_name: str, role: str) -> User:
    user = db.query(User).filter_by(email=email).first()
    if user is None:
        user = User(email=email, full_name=full_name, role=role, is_active=True)
        db.add(user)
    else:
        user.full_name = full_name
        user.role = role
    db.commit()
    db.refresh(user)
    return user


def ensure_event_types(db: Session) -> dict[str, EventType]:
    event_types: dict[str, EventType] = {}
    for name, description in DEMO_EVENT_TYPES:
        event_type = db.query(EventType).filter_by(name=name).first()
        if event_type is None:
            event_type = EventType(name=name, description=description, active=True)
            db.add(event_type)
        event_types[name] = event_type
    db.commit()
    return event_types


def ensure_ministries(db: Session, users: dict[str, User]) -> dict[str, Ministry]:
    ministries: dict[str, Ministry] = {}
    for slug, (name, leader_email, pillar_emails) in DEMO_MINISTRIES.items():
        ministry = db.query(Ministry).filter_by(slug=slug).first()
        if ministry is None:
            ministry = Ministry(slug=slug, name=name)
            db.add(ministry)
        ministry.ministry_leader_id = users[leader_email].id if leader_email else None
        ministry.pillars = [users[email] for email in pillar_emails]
        ministries[slug] = ministry
    db.commit()
    return ministries


def ensure_sample_form(db: Session, ministry: Ministry, leader: User, retreat: EventType) -> MinistryForm:
    """Create one submitted form so pillars have something to review."""

    existing = db.query(MinistryForm).filter_by(ministry_id=ministry.id).first()
    if existing:
        return existing
    actor = Actor(id=leader.id, role=leader.role)
    form = form_workflow.create_form(db, ministry.id, actor)
    form_workflow.update_sections(db, form.id, actor, DEMO_SECTIONS)
    form_entries.add_event(
        db,
        form.id,
        actor,
        FormEventIn(event_name="Summer retreat", event_type_id=retreat.id, estimated_expenses=3500, expected_attendance=40),
    )
    form_entries.add_goal(db, form.id, actor, FormGoalIn(goal_description="Launch mentoring", measure_target="20 pairs"))
    return form_workflow.submit_form(db, form.id, actor)


def main() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        users = {email: ensure_user(db, email, full_name, role) for email, full_name, role in DEMO_USERS}
        ministries = ensure_ministries(db, users)
        event_types = ensure_event_types(db)
        ensure_sample_form(db, ministries["youth-ministry"], users["youth.leader@example.com"], event_types["Retreat"])
    finally:
        db.close()


if __name__ == "__main__":
    main()
