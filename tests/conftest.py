"""Shared fixtures: in-memory SQLite per test, seeded roles, and an API client."""

import os

# Settings are read at import time, so configure before importing the app.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DEBUG"] = "false"

from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

import user_admin.models  # noqa: F401
from user_admin.core import security
from user_admin.db.base import Base
from user_admin.db.seeds.seed_roles import seed_roles
from user_admin.db.session import get_db
from user_admin.main import app
from user_admin.models.role import Role, RoleName
from user_admin.models.team import Team
from user_admin.models.user import User
from user_admin.models.user_role import UserRole
from user_admin.services.auth_service import token_claims

PASSWORD = "Str0ng!Pass"


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    monkeypatch.setattr(security, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    seed_roles(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_team(db: Session, name: str, team_id: Optional[int] = None) -> Team:
    team = Team(id=team_id, name=name, description=f"{name} team")
    db.add(team)
    db.commit()
    db.refresh(team)
    return team


def make_user(
    db: Session,
    username: str,
    role: RoleName = RoleName.USER,
    team: Optional[Team] = None,
    is_active: bool = True,
) -> User:
    role_row = db.query(Role).filter(Role.name == role.value).one()
    user = User(
        username=username,
        email=f"{username}@example.com",
        hashed_password=security.hash_password(PASSWORD),
        is_active=is_active,
        team_id=team.id if team else None,
    )
    user.role_assignment = UserRole(role=role_row)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    token = security.create_access_token(token_claims(user))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(db) -> User:
    return make_user(db, "root", RoleName.ADMIN)


@pytest.fixture
def team(db) -> Team:
    return make_team(db, "Platform")


@pytest.fixture
def manager(db, team) -> User:
    return make_user(db, "mgr", RoleName.MANAGER, team=team)
