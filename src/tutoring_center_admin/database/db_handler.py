'''
The main database handler of this project
'''
import os
import psycopg2
import psycopg2.extensions
import psycopg2.pool
import select
import atexit
import json
from contextlib import contextmanager
from datetime import datetime
from dotenv import load_dotenv
from pydantic import ValidationError
from typing import Optional, Dict, Any, List, Generator, Tuple

from ..common.logger import logger
from ..common.config import GENERATE_SESSIONS_CHANNEL, RESCHEDULE_CHANNEL
from ..core.base_classes import Enrollment, Notification, Profile, ProfileLookup, Session, SessionKeyRow
from ..core.session_keys import to_center_time

class DatabaseHandler:
    """
    Manages a singleton instance of a PostgreSQL connection pool.
    The handler is self-configuring by loading the DATABASE_URL from the
    .env file upon first initialization.

    It is both the SessionStore used by the session expander and the
    ProfileLookup used when enrollments are loaded.
    """
    _instance = None

    def __new__(cls, *args, **kwargs):
        if not cls._instance:
            cls._instance = super(DatabaseHandler, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        """
        Initializes the connection pool by loading configuration from
        environment variables. This logic only runs once.
        """
        if hasattr(self, 'pool') and self.pool:
            return

        load_dotenv()
        db_url = os.getenv("DATABASE_URL")
        if not db_url:
            err_msg = "CRITICAL: DATABASE_URL environment variable is not set."
            logger.critical(err_msg)
            raise ValueError(err_msg)

        try:
            logger.info("Initializing database connection pool...")
            self.pool = psycopg2.pool.SimpleConnectionPool(
                minconn=1,
                maxconn=5,
                dsn=db_url
            )
            # Only register the cleanup function if NOT running tests
            if "PYTEST_CURRENT_TEST" not in os.environ:
                atexit.register(self.close_pool)
        except psycopg2.OperationalError as e:
            logger.critical(f"FATAL: Could not connect to the database: {e}")
            raise

    def close_pool(self):
        """Closes all connections in the pool."""
        if self.pool:
            logger.info("Closing database connection pool.")
            self.pool.closeall()
            self.pool = None

    @contextmanager
    def get_connection(self) -> Generator[psycopg2.extensions.connection, None, None]:
        """Context manager to get a connection from the pool and release it."""
        conn = None
        try:
            conn = self.pool.getconn()
            yield conn
        except psycopg2.Error as e:
            logger.error(f"Database connection error: {e}")
            raise
        finally:
            if conn:
                self.pool.putconn(conn)

    def listen_for_notification(self) -> Optional[Tuple[str, Any]]:
        """
        Checks out a connection to listen on the worker channels.
        Returns the channel and raw string payload of the first notification received.
        """
        conn = None
        try:
            conn = self.pool.getconn()
            conn.set_isolation_level(psycopg2.extensions.ISOLATION_LEVEL_AUTOCOMMIT)

            cursor = conn.cursor()
            cursor.execute(f"LISTEN \"{GENERATE_SESSIONS_CHANNEL}\";")
            cursor.execute(f"LISTEN \"{RESCHEDULE_CHANNEL}\";")

            logger.info(f"Listening on channels '{GENERATE_SESSIONS_CHANNEL}' and '{RESCHEDULE_CHANNEL}'...")

            select.select([conn], [], [])

            conn.poll()
            if conn.notifies:
                notification = conn.notifies.pop(0)
                logger.info(f"Notification received on channel '{notification.channel}'")
                return notification.channel, notification.payload
            return None
        finally:
            if conn:
                self.pool.putconn(conn)

    def get_profile_by_id(self, profile_id: str) -> Optional[Profile]:
        """Fetches a single profile, or None if it does not exist."""
        sql = """
            SELECT id, role, first_name, last_name, email, timezone, status
            FROM "Profiles" WHERE id = %s;
        """
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (profile_id,))
                    row = cur.fetchone()
            if not row:
                logger.warning(f"No profile found with id: {profile_id}")
                return None
            return Profile(
                id=str(row[0]),
                role=row[1],
                first_name=row[2] or '',
                last_name=row[3] or '',
                email=row[4],
                timezone=row[5],
                status=row[6] or "Active"
            )
        except psycopg2.Error as e:
            logger.error(f"Database error fetching profile {profile_id}: {e}")
            return None
        except ValidationError as e:
            logger.error(f"Profile {profile_id} has invalid data: {e}")
            return None

    def get_all_enrollments(self, profile_lookup: Optional[ProfileLookup] = None) -> List[Enrollment]:
        """
        Fetches all enrollments with their student and tutor resolved to profiles.
        Rows that cannot be validated are logged and left out.
        """
        logger.info("Fetching all enrollment records from the database.")
        sql = """
            SELECT id, created_at, summary, student_id, tutor_id,
                   start_date, end_date, availability, "meetingId"
            FROM "Enrollments";
        """
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql)
                    rows = cur.fetchall()
        except psycopg2.Error as e:
            logger.error(f"Database error fetching all enrollments: {e}")
            return []

        lookup: ProfileLookup = profile_lookup or self
        profiles: Dict[str, Optional[Profile]] = {}

        def resolve(profile_id) -> Optional[Profile]:
            if profile_id is None:
                return None
            profile_id = str(profile_id)
            if profile_id not in profiles:
                profiles[profile_id] = lookup.get_profile_by_id(profile_id)
            return profiles[profile_id]

        enrollments = []
        for row in rows:
            try:
                enrollments.append(Enrollment(
                    id=str(row[0]),
                    created_at=row[1],
                    summary=row[2] or '',
                    student=resolve(row[3]),
                    tutor=resolve(row[4]),
                    start_date=row[5],
                    end_date=row[6],
                    availability=self._load_availability(row[0], row[7]),
                    meeting_id=str(row[8]) if row[8] else None
                ))
            except ValidationError as e:
                logger.error(f"Enrollment {row[0]} has invalid data, skipping it: {e}")
        return enrollments

    @staticmethod
    def _load_availability(enrollment_id: Any, value: Any) -> List[Dict[str, Any]]:
        """
        Returns the slot dicts of a stored availability column. Entries that are
        not slot objects are dropped one by one; the slot values themselves are
        validated later by the session expander.
        """
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                logger.warning(f"Enrollment {enrollment_id} has unreadable availability: {value!r}")
                return []
        if not value:
            return []
        if not isinstance(value, list):
            logger.warning(f"Enrollment {enrollment_id} availability is not a list: {value!r}")
            return []

        slots = []
        for entry in value:
            if isinstance(entry, dict):
                slots.append(entry)
            else:
                logger.warning(f"Enrollment {enrollment_id} has a malformed availability slot: {entry!r}. Skipping slot.")
        return slots

    def list_session_keys(self) -> List[SessionKeyRow]:
        """
        Fetches the identifying columns of every session.
        Unlike the other readers this one raises on failure: the caller must
        not continue without it.
        """
        sql = 'SELECT student_id, tutor_id, date FROM "Sessions";'
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql)
                return [
                    SessionKeyRow(student_id=str(row[0]), tutor_id=str(row[1]), date=row[2])
                    for row in cur.fetchall()
                ]

    def insert_session(self, session: Session) -> Optional[Session]:
        """
        Inserts a new session and returns it with its generated id and created_at.
        Returns None on failure, or when the dedup index already holds the same
        student, tutor and start minute.
        """
        sql = """
            INSERT INTO "Sessions" (date, student_id, tutor_id, status, summary, meeting_id)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT DO NOTHING
            RETURNING id, created_at;
        """
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (
                        to_center_time(session.date),
                        session.student_id,
                        session.tutor_id,
                        session.status.value,
                        session.summary,
                        session.meeting_id
                    ))
                    result = cur.fetchone()
                conn.commit()
            if not result:
                logger.warning(f"Session for {session.student_id}/{session.tutor_id} at {session.date} already exists.")
                return None
            return session.model_copy(update={"id": str(result[0]), "created_at": result[1]})
        except psycopg2.Error as e:
            logger.error(f"Failed to insert session for {session.student_id}/{session.tutor_id} at {session.date}: {e}")
            return None

    def ensure_session_dedup_index(self) -> bool:
        """
        Creates the unique index that stops two sessions sharing a student,
        tutor and start minute, even when two generation runs overlap.
        `date` is a timestamptz column; it is shifted to UTC first because
        date_trunc on a timestamptz is not immutable and cannot be indexed.
        """
        sql = """
            CREATE UNIQUE INDEX IF NOT EXISTS sessions_dedup_idx
            ON "Sessions" (student_id, tutor_id, date_trunc('minute', date AT TIME ZONE 'UTC'));
        """
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql)
                conn.commit()
            logger.info("Session deduplication index is in place.")
            return True
        except psycopg2.Error as e:
            logger.error(f"Failed to create session deduplication index: {e}")
            return False

    def reschedule_session(self, session_id: str, new_date: datetime) -> bool:
        """Moves a session to a new date."""
        sql = 'UPDATE "Sessions" SET date = %s WHERE id = %s;'
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (to_center_time(new_date), session_id))
                    updated = cur.rowcount
                conn.commit()
            if not updated:
                logger.warning(f"No session found to reschedule with id: {session_id}")
                return False
            logger.info(f"Rescheduled session {session_id} to {new_date}")
            return True
        except psycopg2.Error as e:
            logger.error(f"Failed to reschedule session {session_id}: {e}")
            return False

    def update_session_summary(self, session_id: str, summary: str) -> bool:
        sql = 'UPDATE "Sessions" SET summary = %s WHERE id = %s;'
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (summary, session_id))
                    updated = cur.rowcount
                conn.commit()
            return bool(updated)
        except psycopg2.Error as e:
            logger.error(f"Failed to update summary of session {session_id}: {e}")
            return False

    def get_notification_by_id(self, notification_id: str) -> Optional[Notification]:
        sql = """
            SELECT id, created_at, session_id, previous_date, suggested_date,
                   student_id, tutor_id, status, summary
            FROM "Notifications" WHERE id = %s;
        """
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (notification_id,))
                    row = cur.fetchone()
            if not row:
                logger.warning(f"No notification found with id: {notification_id}")
                return None
            return Notification(
                id=str(row[0]),
                created_at=row[1],
                session_id=str(row[2]),
                previous_date=row[3],
                suggested_date=row[4],
                student_id=str(row[5]) if row[5] else None,
                tutor_id=str(row[6]) if row[6] else None,
                status=row[7] or "Active",
                summary=row[8] or ''
            )
        except psycopg2.Error as e:
            logger.error(f"Database error fetching notification {notification_id}: {e}")
            return None
        except ValidationError as e:
            logger.error(f"Notification {notification_id} has invalid data: {e}")
            return None

    def update_notification_status(self, notification_id: str, status: str) -> bool:
        """Sets a notification to 'Active' or 'Resolved'."""
        sql = 'UPDATE "Notifications" SET status = %s WHERE id = %s;'
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (status, notification_id))
                conn.commit()
            logger.info(f"Notification {notification_id} marked as {status}.")
            return True
        except psycopg2.Error as e:
            logger.error(f"Failed to update notification {notification_id}: {e}")
            return False
