import os
import uuid
from datetime import datetime
from typing import Dict, List, Optional

import psycopg2
import pytest
from dotenv import load_dotenv

from tutoring_center_admin.core.base_classes import (
    AvailabilitySlot, Enrollment, Profile, Session, SessionKeyRow
)


class FakeSessionStore:
    """In-memory SessionStore. Keeps inserted sessions and counts calls."""
    def __init__(self, sessions: Optional[List[Session]] = None):
        self.sessions: List[Session] = list(sessions or [])
        self.list_calls = 0
        self.insert_calls = 0
        self.fail_inserts_at: set = set()
        self.fail_listing = False

    def list_session_keys(self) -> List[SessionKeyRow]:
        self.list_calls += 1
        if self.fail_listing:
            raise ConnectionError("store unreachable")
        return [
            SessionKeyRow(student_id=s.student_id, tutor_id=s.tutor_id, date=s.date)
            for s in self.sessions
        ]

    def insert_session(self, session: Session) -> Optional[Session]:
        self.insert_calls += 1
        if session.date in self.fail_inserts_at:
            return None
        saved = session.model_copy(update={"id": str(uuid.uuid4()), "created_at": datetime.now()})
        self.sessions.append(saved)
        return saved


def make_profile(profile_id: str, role: str = "Student") -> Profile:
    return Profile(id=profile_id, role=role, first_name=profile_id, last_name="Test")


def make_enrollment(student_id: Optional[str] = "S1", tutor_id: Optional[str] = "T1",
                    availability: Optional[List[Dict[str, str]]] = None,
                    enrollment_id: str = "E1", **kwargs) -> Enrollment:
    return Enrollment(
        id=enrollment_id,
        student=make_profile(student_id, "Student") if student_id else None,
        tutor=make_profile(tutor_id, "Tutor") if tutor_id else None,
        summary=kwargs.pop("summary", "Algebra"),
        availability=[AvailabilitySlot(**slot) for slot in (availability or [])],
        **kwargs
    )


@pytest.fixture
def store() -> FakeSessionStore:
    return FakeSessionStore()


@pytest.fixture
def enrollment_factory():
    return make_enrollment


@pytest.fixture
def monday_slot() -> Dict[str, str]:
    return {"day": "Monday", "startTime": "15:00", "endTime": "16:00"}


@pytest.fixture
def db_handler_with_mock_pool(mocker, monkeypatch):
    """
    A DatabaseHandler whose pool hands out a MagicMock connection.
    Yields (handler, cursor) so tests can script fetch results.
    """
    from tutoring_center_admin.database.db_handler import DatabaseHandler

    mocker.patch('tutoring_center_admin.database.db_handler.load_dotenv')
    monkeypatch.setenv("DATABASE_URL", "fake_db_url")
    mock_pool_cls = mocker.patch('psycopg2.pool.SimpleConnectionPool')

    conn = mocker.MagicMock()
    cursor = conn.cursor.return_value.__enter__.return_value
    mock_pool_cls.return_value.getconn.return_value = conn

    DatabaseHandler._instance = None
    handler = DatabaseHandler()
    yield handler, cursor
    DatabaseHandler._instance = None


@pytest.fixture(scope="function")
def test_db_url() -> str:
    load_dotenv()
    url = os.getenv("TEST_DATABASE_URL")
    if not url:
        pytest.skip("TEST_DATABASE_URL is not set in the .env file.")
    return url


@pytest.fixture(scope="function")
def test_db_enrollment(test_db_url):
    """
    Inserts a student, a tutor and one enrollment into the test DB, yields the
    enrollment id, and removes everything (including generated sessions) afterwards.
    """
    conn = psycopg2.connect(test_db_url)
    cursor = conn.cursor()

    student_id = tutor_id = enrollment_id = None
    try:
        cursor.execute(
            """INSERT INTO "Profiles" (role, first_name, last_name, email, status)
               VALUES ('Student', 'E2E', 'Student', 'e2e-student@example.com', 'Active') RETURNING id;"""
        )
        student_id = cursor.fetchone()[0]
        cursor.execute(
            """INSERT INTO "Profiles" (role, first_name, last_name, email, status)
               VALUES ('Tutor', 'E2E', 'Tutor', 'e2e-tutor@example.com', 'Active') RETURNING id;"""
        )
        tutor_id = cursor.fetchone()[0]
        cursor.execute(
            """INSERT INTO "Enrollments" (student_id, tutor_id, summary, availability)
               VALUES (%s, %s, 'E2E enrollment',
                       '[{"day": "Monday", "startTime": "15:00", "endTime": "16:00"}]'::jsonb)
               RETURNING id;""",
            (student_id, tutor_id)
        )
        enrollment_id = cursor.fetchone()[0]
        conn.commit()

        yield enrollment_id

    finally:
        if student_id:
            cursor.execute('DELETE FROM "Sessions" WHERE student_id = %s;', (student_id,))
        if enrollment_id:
            cursor.execute('DELETE FROM "Enrollments" WHERE id = %s;', (enrollment_id,))
        for profile_id in (student_id, tutor_id):
            if profile_id:
                cursor.execute('DELETE FROM "Profiles" WHERE id = %s;', (profile_id,))
        conn.commit()
        cursor.close()
        conn.close()
