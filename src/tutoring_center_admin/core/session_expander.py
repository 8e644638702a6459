'''
This file expands every enrollment's recurring weekly availability into concrete,
dated sessions for a given window (normally one week) and persists them.

Re-running it over the same window is safe: every session already in the
database is indexed by its deduplication key before anything is created.
'''
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, List, Optional, Set, Tuple, Union

from dateutil.parser import isoparse

from ..common.config import DEFAULT_SESSION_STATUS
from ..common.exceptions import InvalidTimeSlotError, SessionIndexLoadError
from ..common.logger import logger
from .base_classes import Enrollment, Session, SessionStatus, SessionStore
from .session_keys import build_session_key, to_local_wall_clock
from .time_slots import DayOfWeek, TimeSlot, parse_slot


def current_week_window(today: Optional[Union[date, datetime]] = None) -> Tuple[datetime, datetime]:
    """Monday 00:00:00 to Sunday 23:59:59 of the week containing `today`."""
    if today is None:
        today = datetime.now()
    if isinstance(today, datetime):
        today = today.date()

    monday = today - timedelta(days=today.weekday())
    week_start = datetime.combine(monday, time.min)
    week_end = datetime.combine(monday + timedelta(days=6), time(23, 59, 59))
    return week_start, week_end


def _calendar_days(window_start: datetime, window_end: datetime) -> Iterator[datetime]:
    """Every calendar day touched by the window, as midnight datetimes."""
    day = window_start.date()
    while day <= window_end.date():
        yield datetime.combine(day, time.min)
        day += timedelta(days=1)


class SessionExpander:
    """
    Turns enrollments into sessions for a window. The store is injected so the
    same logic runs against PostgreSQL or an in-memory fake.
    """
    def __init__(self, store: SessionStore):
        self.store = store

    def load_existing_keys(self) -> Set[str]:
        """
        Indexes every persisted session by its deduplication key.

        Raises:
            SessionIndexLoadError: if the sessions could not be read. Carrying
                on without the index could create duplicates.
        """
        try:
            rows = self.store.list_session_keys()
        except Exception as e:
            logger.critical(f"Could not load existing sessions, aborting generation: {e}")
            raise SessionIndexLoadError("Failed to load existing sessions") from e

        keys = {
            build_session_key(row.student_id, row.tutor_id, row.date)
            for row in rows if row.date is not None
        }
        logger.info(f"Indexed {len(keys)} existing session keys.")
        return keys

    def expand(self, window_start: datetime, window_end: datetime,
               enrollments: Iterable[Enrollment]) -> List[Session]:
        """
        Creates and persists every session of `enrollments` that falls fully
        inside [window_start, window_end] and does not exist yet.

        Returns only the sessions created by this call.
        """
        window_start = to_local_wall_clock(window_start)
        window_end = to_local_wall_clock(window_end)
        if window_end < window_start:
            logger.warning(f"Window end {window_end} is before window start {window_start}. Nothing to generate.")
            return []

        # Loaded once, before any duplicate check. Keys created during this
        # run are added to the same set.
        scheduled_keys = self.load_existing_keys()
        created: List[Session] = []

        for enrollment in enrollments:
            if not enrollment.student or not enrollment.tutor:
                logger.warning(f"Enrollment {enrollment.id} is missing its student or tutor. Skipping.")
                continue

            for raw_slot in enrollment.availability:
                try:
                    slot = parse_slot(raw_slot)
                except InvalidTimeSlotError as e:
                    logger.warning(f"Invalid availability on enrollment {enrollment.id}: {e}. Skipping slot.")
                    continue

                created.extend(
                    self._expand_slot(enrollment, slot, window_start, window_end, scheduled_keys)
                )

        logger.info(f"Created {len(created)} new sessions between {window_start} and {window_end}.")
        return created

    def _expand_slot(self, enrollment: Enrollment, slot: TimeSlot, window_start: datetime,
                     window_end: datetime, scheduled_keys: Set[str]) -> List[Session]:
        created = []
        student_id, tutor_id = enrollment.student.id, enrollment.tutor.id

        for day in _calendar_days(window_start, window_end):
            if DayOfWeek.of(day) != slot.day:
                continue

            session_start = slot.start.on(day)
            session_end = slot.end.on(day)
            if session_start < window_start or session_end > window_end:
                continue

            session_key = build_session_key(student_id, tutor_id, session_start)
            if session_key in scheduled_keys:
                logger.warning(f"Duplicate session detected: {session_key}")
                continue

            new_session = Session(
                date=session_start,
                student_id=student_id,
                tutor_id=tutor_id,
                status=SessionStatus(DEFAULT_SESSION_STATUS),
                summary=enrollment.summary,
                meeting_id=enrollment.meeting_id or None,
            )
            try:
                saved = self.store.insert_session(new_session)
            except Exception:
                logger.exception(f"Failed to save session {session_key}. Skipping.")
                continue
            if saved is None:
                logger.warning(f"Session {session_key} was not saved. Skipping.")
                continue

            created.append(saved)
            scheduled_keys.add(session_key)

        return created


def add_sessions(store: SessionStore, window_start_iso: str, window_end_iso: str,
                 enrollments: Iterable[Enrollment]) -> List[Session]:
    """
    Entry point used by the "generate this week's sessions" action.

    Raises:
        ValueError: if either bound is not an ISO 8601 timestamp.
        SessionIndexLoadError: if existing sessions could not be loaded.
    """
    window_start = isoparse(window_start_iso)
    window_end = isoparse(window_end_iso)
    return SessionExpander(store).expand(window_start, window_end, enrollments)
