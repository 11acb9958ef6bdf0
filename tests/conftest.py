"""Pytest configuration and shared fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from approvalflow.core.database import Base, init_db
from approvalflow.core.permissions import UserRole
from approvalflow.models import Company, User
from approvalflow.services.request_store import RequestStore
from approvalflow.services.workflow_service import WorkflowService

SIGNATURE = "3045022100c0ffee-signed-payload"


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def company(db):
    company = Company(name="Lycée Saint-Exupéry")
    db.add(company)
    db.commit()
    return company


@pytest.fixture
def other_company(db):
    company = Company(name="Collège Jean Moulin")
    db.add(company)
    db.commit()
    return company


def make_user(db, company, role, email=None):
    user = User(
        company_id=company.id,
        email=email or f"{role.value.lower()}@t{company.id[:8]}.approvalflow.fr",
        first_name=role.value.title(),
        last_name="Tester",
        role=role.value,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def users(db, company):
    """One active user per role in the main tenant."""
    return {role: make_user(db, company, role) for role in UserRole}


@pytest.fixture
def service(db):
    return WorkflowService(db)


@pytest.fixture
def request_store(db):
    return RequestStore(db)


@pytest.fixture
def staff_request(db, users, request_store):
    request = request_store.create_request(users[UserRole.STAFF], notes="10 boxes of A4 paper")
    db.commit()
    return request


@pytest.fixture
def staff_workflow(service, staff_request, company):
    return service.create_workflow(staff_request.id, company.id, UserRole.STAFF)


@pytest.fixture
def signature():
    return SIGNATURE
