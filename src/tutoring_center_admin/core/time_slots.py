'''
Parsing of the recurring availability slots stored on enrollments.

Enrollments carry their availability as loose {day, startTime, endTime} dicts.
Everything in here turns those into validated values, and is the only place
that is allowed to do so.
'''
import re
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..common.exceptions import InvalidTimeSlotError
from .base_classes import AvailabilitySlot

_TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})", re.ASCII)


class DayOfWeek(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def parse(cls, name: Optional[str]) -> "DayOfWeek":
        """Case-insensitive lookup by full english day name ("monday", "MONDAY", ...)."""
        if isinstance(name, str):
            for day in cls:
                if day.value.lower() == name.lower():
                    return day
        raise InvalidTimeSlotError(f"Unknown day of week: {name!r}")

    @classmethod
    def of(cls, value: date) -> "DayOfWeek":
        # Members are declared in date.weekday() order
        return list(cls)[value.weekday()]


class TimeOfDay(BaseModel):
    hour: int = Field(..., ge=0, le=23)
    minute: int = Field(..., ge=0, le=59)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, text: Optional[str]) -> "TimeOfDay":
        """
        Parses a 24-hour "HH:MM" string.

        A hyphen anywhere means the value is a packed "HH:MM-HH:MM" range left
        over from the old availability format, which is rejected rather than
        split.
        """
        if not isinstance(text, str) or not text:
            raise InvalidTimeSlotError(f"Missing time value: {text!r}")
        if "-" in text:
            raise InvalidTimeSlotError(f"Time value looks like a packed range: {text!r}")

        match = _TIME_PATTERN.fullmatch(text)
        if not match:
            raise InvalidTimeSlotError(f"Time value is not HH:MM: {text!r}")

        hour, minute = int(match.group(1)), int(match.group(2))
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise InvalidTimeSlotError(f"Time value out of range: {text!r}")
        return cls(hour=hour, minute=minute)

    def on(self, day: datetime) -> datetime:
        """Places this time of day on the calendar day of `day`."""
        return day.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


class TimeSlot(BaseModel):
    """A validated availability slot."""
    day: DayOfWeek
    start: TimeOfDay
    end: TimeOfDay

    model_config = ConfigDict(frozen=True)


def parse_slot(raw: AvailabilitySlot) -> TimeSlot:
    """
    Validates one raw availability slot.

    Raises:
        InvalidTimeSlotError: unknown day, or a malformed or missing start/end.
    """
    day = DayOfWeek.parse(raw.day)
    start = TimeOfDay.parse(raw.start_time)
    end = TimeOfDay.parse(raw.end_time)

    return TimeSlot(day=day, start=start, end=end)
