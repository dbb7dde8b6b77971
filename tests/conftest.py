from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth.deps import get_current_user
from app.core.db import Base, get_db
from app.main import app
from app.models.ministry import Ministry
from app.models.ministry_form import MinistryForm
from app.models.user import User
from app.services import form_workflow
from helpers import actor_for, make_user

SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def override_get_db() -> Generator[Session, None, None]:
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app.dependency_overrides.clear()
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def authorize(client: TestClient):
    def _apply(user: User):
        app.dependency_overrides[get_current_user] = lambda: user

    yield _apply
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture()
def leader_user(db_session: Session) -> User:
    return make_user(db_session, "leader@example.com", "ministry_leader", "Hanna Leader")


@pytest.fixture()
def other_leader(db_session: Session) -> User:
    return make_user(db_session, "other.leader@example.com", "ministry_leader", "Dawit Leader")


@pytest.fixture()
def pillar_user(db_session: Session) -> User:
    return make_user(db_session, "pillar@example.com", "pillar", "Meron Pillar")


@pytest.fixture()
def second_pillar(db_session: Session) -> User:
    return make_user(db_session, "pillar2@example.com", "pillar", "Samuel Pillar")


@pytest.fixture()
def outside_pillar(db_session: Session) -> User:
    return make_user(db_session, "pillar3@example.com", "pillar", "Ruth Outsider")


@pytest.fixture()
def pastor_user(db_session: Session) -> User:
    return make_user(db_session, "pastor@example.com", "pastor", "Pastor Yonas")


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    return make_user(db_session, "admin@example.com", "admin", "Admin")


@pytest.fixture()
def ministry(db_session: Session, leader_user: User, pillar_user: User, second_pillar: User) -> Ministry:
    ministry = Ministry(name="Youth Ministry", slug="youth-ministry", ministry_leader_id=leader_user.id, active=True)
    ministry.pillars = [pillar_user, second_pillar]
    db_session.add(ministry)
    db_session.commit()
    db_session.refresh(ministry)
    return ministry


@pytest.fixture()
def unassigned_ministry(db_session: Session, leader_user: User) -> Ministry:
    ministry = Ministry(name="Choir", slug="choir", ministry_leader_id=leader_user.id, active=True)
    db_session.add(ministry)
    db_session.commit()
    db_session.refresh(ministry)
    return ministry


@pytest.fixture()
def draft_form(db_session: Session, ministry: Ministry, leader_user: User) -> MinistryForm:
    return form_workflow.create_form(db_session, ministry.id, actor_for(leader_user), year=2025)


@pytest.fixture()
def pending_pillar_form(db_session: Session, draft_form: MinistryForm, leader_user: User) -> MinistryForm:
    return form_workflow.submit_form(db_session, draft_form.id, actor_for(leader_user))


@pytest.fixture()
def pending_pastor_form(db_session: Session, pending_pillar_form: MinistryForm, pillar_user: User) -> MinistryForm:
    form_workflow.decide(db_session, pending_pillar_form.id, actor_for(pillar_user), "approve")
    db_session.refresh(pending_pillar_form)
    return pending_pillar_form
