"""Shared test fixtures for the orgscope test suite.

Tests run against an in-memory SQLite database shared by the app and the
test session (static pool). The schema is created once; every test starts
from empty tables.
"""

import os

# Point the app at in-memory SQLite before any app imports.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FORMAT"] = "text"
os.environ["RATE_LIMIT_PER_MINUTE"] = "0"
os.environ["ENVIRONMENT"] = "development"

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from orgscope.database import Base, SessionLocal, create_schema, engine, get_db
from orgscope.main import app
from orgscope.middleware.request_context import _rate_buckets
from orgscope.models import OrganisationStructure, User
from orgscope.schemas.structure import StructureCreate
from orgscope.schemas.user import UserCreate
from orgscope.services.hierarchy_service import HierarchyService
from orgscope.services.permission_service import PermissionService
from orgscope.services.user_service import UserService

create_schema()


@pytest.fixture(autouse=True)
def _clean_tables():
    """Empty every table before each test (children first)."""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    """TestClient whose requests share the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    _rate_buckets.clear()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    """Factory: create a user through the service layer."""
    counter = {"n": 0}

    def _make(name: str, email: Optional[str] = None, role: str = "Engineer",
              spirit_animal: str = "Otter") -> User:
        counter["n"] += 1
        email = email or f"{name.lower().replace(' ', '.')}.{counter['n']}@acme.example"
        data = UserCreate(name=name, email=email, role=role, spirit_animal=spirit_animal)
        return UserService(db).create_user(data)

    return _make


@pytest.fixture()
def make_structure(db):
    """Factory: create a structure, optionally under *parent*."""

    def _make(name: str, parent: Optional[OrganisationStructure] = None) -> OrganisationStructure:
        data = StructureCreate(name=name, parent_id=parent.id if parent else None)
        created = HierarchyService(db).create_structure(data)
        return db.get(OrganisationStructure, created.structure.id)

    return _make


@pytest.fixture()
def grant(db):
    """Factory: grant *structure* to *user*; returns the permission id."""

    def _grant(user: User, structure: OrganisationStructure) -> str:
        return PermissionService(db).grant_permission(user.id, structure.id).permission.id

    return _grant


@pytest.fixture()
def org(make_structure):
    """Acme with Engineering (Frontend > Team A, Team B) and Sales.

    Paths: acme, acme/engineering, acme/engineering/frontend,
    acme/engineering/frontend/team-a, acme/engineering/frontend/team-b,
    acme/sales.
    """
    acme = make_structure("Acme")
    eng = make_structure("Engineering", acme)
    frontend = make_structure("Frontend", eng)
    team_a = make_structure("Team A", frontend)
    team_b = make_structure("Team B", frontend)
    sales = make_structure("Sales", acme)
    return {
        "acme": acme,
        "eng": eng,
        "frontend": frontend,
        "team_a": team_a,
        "team_b": team_b,
        "sales": sales,
    }
