import os
from datetime import date, datetime, time, timedelta, timezone
from unittest.mock import AsyncMock

from cryptography.fernet import Fernet
from jose import jwt

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from timetracker.config import settings
from timetracker.connectors.base import BaseTicketSystemConnector
from timetracker.constants.ticket_system_type import TicketSystemType, UserType
from timetracker.database import Base, get_db
from timetracker.main import app
from timetracker.models import Activity, Customer, Project, TicketSystem, TimeEntry, User, UserTicketSystem
from timetracker.repositories import TimetrackerRepository
from timetracker.utils.encrypt import encrypt_token


class FakeConnectorFactory:
    """Hands out one mocked connector and records who asked for it."""

    def __init__(self, connector=None, avoided=False):
        self.connector = connector or make_connector()
        self.avoided = avoided
        self.created = []

    def is_connection_avoided(self, user_id, ticket_system):
        return self.avoided

    def create(self, user_id, ticket_system):
        self.created.append((user_id, ticket_system.id))
        return self.connector


def make_connector():
    connector = AsyncMock(spec=BaseTicketSystemConnector)
    connector.create_worklog.return_value = "1001"
    connector.update_worklog.side_effect = lambda issue_key, worklog_id, entry: worklog_id
    connector.delete_worklog.return_value = True
    connector.search_issues.return_value = []
    connector.get_subtickets.return_value = []
    return connector


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
def db(engine) -> Session:
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repository(db) -> TimetrackerRepository:
    return TimetrackerRepository(db)


@pytest.fixture
def connector():
    return make_connector()


@pytest.fixture
def connector_factory(connector) -> FakeConnectorFactory:
    return FakeConnectorFactory(connector)


@pytest.fixture
def user(db) -> User:
    user = User(username="developer", type=UserType.DEV, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def other_user(db) -> User:
    user = User(username="colleague", type=UserType.DEV, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def customer(db) -> Customer:
    customer = Customer(name="ACME", active=True)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


@pytest.fixture
def activity(db) -> Activity:
    activity = Activity(name="Development", needs_ticket=False)
    db.add(activity)
    db.commit()
    db.refresh(activity)
    return activity


@pytest.fixture
def jira(db) -> TicketSystem:
    jira = TicketSystem(
        name="Jira",
        type=TicketSystemType.JIRA,
        url="https://jira.example.com",
        book_time=True,
        ticket_url="https://jira.example.com/browse/%s",
    )
    db.add(jira)
    db.commit()
    db.refresh(jira)
    return jira


@pytest.fixture
def internal_jira(db) -> TicketSystem:
    internal = TicketSystem(
        name="Internal Jira",
        type=TicketSystemType.JIRA,
        url="https://internal-jira.example.com",
        book_time=True,
    )
    db.add(internal)
    db.commit()
    db.refresh(internal)
    return internal


@pytest.fixture
def user_token(db, user, jira) -> UserTicketSystem:
    token = UserTicketSystem(
        user_id=user.id,
        ticket_system_id=jira.id,
        access_token=encrypt_token("jira-access-token"),
        token_secret=encrypt_token("jira-token-secret"),
    )
    db.add(token)
    db.commit()
    return token


@pytest.fixture
def project(db, customer, jira, user) -> Project:
    project = Project(
        name="Shop Relaunch",
        active=True,
        customer_id=customer.id,
        ticket_system_id=jira.id,
        project_lead_id=user.id,
        jira_id="ABC,DEF",
    )
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


@pytest.fixture
def plain_project(db, customer) -> Project:
    """Project without any ticket system."""
    project = Project(name="Internal Meetings", active=True, customer_id=customer.id)
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


@pytest.fixture
def entry_factory(db):
    def _make(user, project, day=date(2024, 3, 1), start=time(8, 0), end=time(9, 0), **kwargs):
        entry = TimeEntry(user_id=user.id, project_id=project.id, day=day, start=start, end=end, **kwargs)
        entry.calc_duration()
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
    return _make


@pytest.fixture
def client(engine) -> TestClient:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # Override dependency for test database session
    def override_get_db() -> Session:
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def issue_token(username, expires_delta=timedelta(minutes=30)):
    """Signs a bearer token the way the login frontend does."""
    claims = {"sub": username, "exp": datetime.now(timezone.utc) + expires_delta}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {issue_token(user.username)}"}


@pytest.fixture
def expired_auth_headers(user):
    return {"Authorization": f"Bearer {issue_token(user.username, timedelta(minutes=-5))}"}
