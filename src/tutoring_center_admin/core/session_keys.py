'''
Deduplication keys for sessions.

A session is identified by (student, tutor, start time to the minute). The same
key function is used for sessions read back from the database and for sessions
generated during a run, so both can live in one set.
'''
from datetime import datetime
from typing import Union

from dateutil.parser import isoparse
from pytz import timezone

from ..common.config import DEFAULT_TIMEZONE, SESSION_KEY_TIME_FORMAT


def to_local_wall_clock(value: datetime) -> datetime:
    """
    Returns a naive datetime on the center's wall clock.
    Naive values are already wall-clock times and are returned untouched.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=None)
    return value.astimezone(timezone(DEFAULT_TIMEZONE)).replace(tzinfo=None)


def to_center_time(value: datetime) -> datetime:
    """
    Attaches the center's timezone to a naive wall-clock value, so the stored
    instant reads back as the same wall-clock time. Aware values pass through.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        return timezone(DEFAULT_TIMEZONE).localize(value.replace(tzinfo=None))
    return value


def build_session_key(student_id: str, tutor_id: str, start: Union[datetime, str]) -> str:
    """Builds the canonical '<student>-<tutor>-<YYYY-MM-DD-HH:MM>' key."""
    if isinstance(start, str):
        start = isoparse(start)
    local_start = to_local_wall_clock(start)
    return f"{student_id}-{tutor_id}-{local_start.strftime(SESSION_KEY_TIME_FORMAT)}"
