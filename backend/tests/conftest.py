import os
from datetime import date
from types import SimpleNamespace

# The app engine is built at import time; keep it off the default PostgreSQL URL.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.api.deps import get_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.main import app  # noqa: E402
from app.models.class_section import ClassSection  # noqa: E402
from app.models.faculty import Faculty  # noqa: E402
from app.models.timetable import Timetable  # noqa: E402
from app.services.identity import CallerIdentity  # noqa: E402

CSE = "dept-cse"
ECE = "dept-ece"


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def campus(session_factory):
    """Two departments: CSE with an incharge, a coordinator and three faculty; ECE with one faculty."""
    session = session_factory()
    try:
        rows = {
            "incharge": Faculty(
                id="fac-incharge",
                name="Indira Incharge",
                email="incharge@college.edu",
                department_id=CSE,
                is_timetable_incharge=True,
            ),
            "coordinator": Faculty(
                id="fac-coord",
                name="Chandra Coordinator",
                email="coordinator@college.edu",
                department_id=CSE,
                is_coordinator=True,
            ),
            "alice": Faculty(id="fac-alice", name="Alice Rao", email="alice@college.edu", department_id=CSE),
            "bob": Faculty(id="fac-bob", name="Bob Iyer", email="bob@college.edu", department_id=CSE),
            "carol": Faculty(id="fac-carol", name="Carol Das", email="carol@college.edu", department_id=CSE),
            "retired": Faculty(
                id="fac-retired",
                name="Ravi Retired",
                email="retired@college.edu",
                department_id=CSE,
                is_active=False,
            ),
            "eve": Faculty(id="fac-eve", name="Eve Nair", email="eve@college.edu", department_id=ECE),
        }
        session.add_all(rows.values())
        session.add_all(
            [
                ClassSection(id="cls-cse-2a", department_id=CSE, name="CSE 2A", year="2nd", section="A"),
                ClassSection(id="cls-cse-2b", department_id=CSE, name="CSE 2B", year="2nd", section="B"),
                ClassSection(id="cls-ece-2a", department_id=ECE, name="ECE 2A", year="2nd", section="A"),
                Timetable(
                    id="tt-cse-2",
                    department_id=CSE,
                    year="2nd",
                    session_start=date(2026, 7, 1),
                    session_end=date(2026, 11, 30),
                    created_by="fac-incharge",
                ),
                Timetable(
                    id="tt-ece-2",
                    department_id=ECE,
                    year="2nd",
                    session_start=date(2026, 7, 1),
                    session_end=date(2026, 11, 30),
                ),
            ]
        )
        session.commit()
    finally:
        session.close()

    return SimpleNamespace(
        cse=CSE,
        ece=ECE,
        timetable_id="tt-cse-2",
        ece_timetable_id="tt-ece-2",
        class_a="cls-cse-2a",
        class_b="cls-cse-2b",
        ece_class="cls-ece-2a",
        incharge=CallerIdentity("fac-incharge", CSE),
        coordinator=CallerIdentity("fac-coord", CSE),
        alice=CallerIdentity("fac-alice", CSE),
        bob=CallerIdentity("fac-bob", CSE),
        carol=CallerIdentity("fac-carol", CSE),
        retired=CallerIdentity("fac-retired", CSE),
        eve=CallerIdentity("fac-eve", ECE),
    )


def auth_headers(caller: CallerIdentity) -> dict[str, str]:
    token = create_access_token(caller.faculty_id, department_id=caller.department_id)
    return {"Authorization": f"Bearer {token}"}


def slot_payload(campus, **overrides) -> dict:
    payload = {
        "timetable_id": campus.timetable_id,
        "class_id": campus.class_a,
        "subject_code": "CS201",
        "subject_name": "Data Structures",
        "faculty_id": campus.alice.faculty_id,
        "day_of_week": "Monday",
        "start_time": "09:00",
        "end_time": "10:00",
        "room_number": "R101",
    }
    payload.update(overrides)
    return payload
