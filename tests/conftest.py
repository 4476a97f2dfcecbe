"""
Test configuration and shared fixtures for the classroom analytics test suite.
Provides in-memory databases, the API test client and sample telemetry data.
"""

import os

# Point the module-level engines at throwaway in-memory databases before the app is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DATA_WAREHOUSE_URL"] = "sqlite://"
os.environ["ANALYTICS_SQL_DIALECT"] = ""

import pytest
from datetime import datetime
from typing import Dict, Any
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.app import create_app
from app.core.database import Base, DWBase, SessionLocal, get_db, get_dw_db
from app.datawarehouse.models import (
    School,
    Classroom,
    User,
    UserClassroom,
    LearningSession,
    Event,
    Quiz,
    QuizSession,
    Content,
)
from app.query import QueryCompiler, build_default_registry


# ===== DATABASE SETUP =====

@pytest.fixture(scope="session")
def config_engine():
    """In-memory SQLite engine for the config/log database"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    from app.logging.models import Log  # noqa: F401
    Base.metadata.create_all(bind=engine)
    # The logging middleware opens its own sessions from SessionLocal
    SessionLocal.configure(bind=engine)
    return engine


@pytest.fixture(scope="session")
def dw_engine():
    """In-memory SQLite engine for the telemetry store"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    DWBase.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="function")
def config_db_session(config_engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=config_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        # Clean up all data after each test
        Base.metadata.drop_all(bind=config_engine)
        Base.metadata.create_all(bind=config_engine)


@pytest.fixture(scope="function")
def dw_db_session(dw_engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=dw_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        # Clean up all data after each test
        DWBase.metadata.drop_all(bind=dw_engine)
        DWBase.metadata.create_all(bind=dw_engine)


@pytest.fixture
def client(config_db_session, dw_db_session):
    """FastAPI test client with database overrides"""
    app = create_app()

    def override_get_db():
        yield config_db_session

    def override_get_dw_db():
        yield dw_db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dw_db] = override_get_dw_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ===== COMPILER FIXTURES =====

@pytest.fixture(scope="session")
def registry():
    return build_default_registry()


@pytest.fixture
def pg_compiler(registry) -> QueryCompiler:
    return QueryCompiler(registry, dialect="postgresql")


@pytest.fixture
def sqlite_compiler(registry) -> QueryCompiler:
    return QueryCompiler(registry, dialect="sqlite")


# ===== SAMPLE DATA FIXTURES =====

@pytest.fixture
def telemetry_data(dw_db_session) -> Dict[str, Any]:
    """
    Two schools, two classrooms, one teacher and three students.

    Students s1 and s2 (Lincoln) have three sessions between them, the teacher has one.
    Events fall on 2024-01-15 (two) and 2024-01-16 (one).
    """
    lincoln = School(id="sch-1", name="Lincoln High", region="north")
    roosevelt = School(id="sch-2", name="Roosevelt Middle", region="south")
    dw_db_session.add_all([lincoln, roosevelt])
    dw_db_session.flush()

    algebra = Classroom(id="cl-1", school_id="sch-1", name="Algebra I", grade_level=9, subject="math")
    biology = Classroom(id="cl-2", school_id="sch-2", name="Biology", grade_level=7, subject="science")
    dw_db_session.add_all([algebra, biology])
    dw_db_session.flush()

    teacher = User(
        id="u-t1", school_id="sch-1", username="mrs_smith", role="teacher",
        last_active=datetime(2024, 1, 16, 12, 0),
    )
    s1 = User(id="u-s1", school_id="sch-1", username="alice", role="student", last_active=datetime(2024, 1, 15, 9, 0))
    s2 = User(id="u-s2", school_id="sch-1", username="bob", role="student")
    s3 = User(id="u-s3", school_id="sch-2", username="carol", role="student")
    dw_db_session.add_all([teacher, s1, s2, s3])
    dw_db_session.flush()

    dw_db_session.add_all([
        UserClassroom(user_id="u-t1", classroom_id="cl-1", role="teacher"),
        UserClassroom(user_id="u-s1", classroom_id="cl-1", role="student"),
        UserClassroom(user_id="u-s2", classroom_id="cl-1", role="student"),
        UserClassroom(user_id="u-s3", classroom_id="cl-2", role="student"),
    ])

    sessions = [
        LearningSession(
            id="ses-1", user_id="u-s1", classroom_id="cl-1", application="whiteboard",
            start_time=datetime(2024, 1, 15, 9, 0), duration_seconds=1200,
        ),
        LearningSession(
            id="ses-2", user_id="u-s1", classroom_id="cl-1", application="notebook",
            start_time=datetime(2024, 1, 16, 8, 0), duration_seconds=600,
        ),
        LearningSession(
            id="ses-3", user_id="u-s2", classroom_id="cl-1", application="whiteboard",
            start_time=datetime(2024, 1, 15, 17, 30), duration_seconds=1800,
        ),
        LearningSession(
            id="ses-4", user_id="u-t1", classroom_id="cl-1", application="whiteboard",
            start_time=datetime(2024, 1, 15, 8, 45), duration_seconds=3600,
        ),
    ]
    dw_db_session.add_all(sessions)
    dw_db_session.flush()

    events = [
        Event(
            id="ev-1", event_type="stroke_added", user_id="u-s1", session_id="ses-1", classroom_id="cl-1",
            school_id="sch-1", application="whiteboard", timestamp=datetime(2024, 1, 15, 9, 5),
        ),
        Event(
            id="ev-2", event_type="page_created", user_id="u-s2", session_id="ses-3", classroom_id="cl-1",
            school_id="sch-1", application="notebook", timestamp=datetime(2024, 1, 15, 17, 35),
        ),
        Event(
            id="ev-3", event_type="stroke_added", user_id="u-s1", session_id="ses-2", classroom_id="cl-1",
            school_id="sch-1", application="whiteboard", timestamp=datetime(2024, 1, 16, 8, 10),
        ),
    ]
    dw_db_session.add_all(events)

    quiz = Quiz(id="q-1", creator_id="u-t1", classroom_id="cl-1", title="Linear equations", total_questions=10)
    dw_db_session.add(quiz)
    dw_db_session.flush()

    dw_db_session.add_all([
        QuizSession(
            id="qs-1", quiz_id="q-1", student_id="u-s1", started_at=datetime(2024, 1, 15, 10, 0),
            percentage_score=80.0, is_completed=True,
        ),
        QuizSession(
            id="qs-2", quiz_id="q-1", student_id="u-s2", started_at=datetime(2024, 1, 15, 10, 5),
            percentage_score=60.0, is_completed=False,
        ),
    ])

    dw_db_session.add_all([
        Content(id="c-1", creator_id="u-s1", classroom_id="cl-1", content_type="note", file_size_bytes=1048576),
        Content(id="c-2", creator_id="u-t1", classroom_id="cl-1", content_type="drawing", file_size_bytes=3145728),
    ])

    dw_db_session.commit()
    return {
        "schools": [lincoln, roosevelt],
        "students": [s1, s2, s3],
        "teacher": teacher,
        "sessions": sessions,
        "events": events,
    }


# ===== UTILITY FIXTURES =====

@pytest.fixture
def api_headers():
    """Standard API headers for testing"""
    return {
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
