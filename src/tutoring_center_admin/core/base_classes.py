'''
This file contains all the base models that will be used in the different files
'''
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Literal, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field


class SessionStatus(str, Enum):
    ACTIVE = "Active"
    COMPLETE = "Complete"
    RESCHEDULED = "Rescheduled"


class Profile(BaseModel):
    """A student, tutor or admin as stored in the Profiles table."""
    id: str
    role: Literal["Student", "Tutor", "Admin"]
    first_name: str = Field('', alias='firstName')
    last_name: str = Field('', alias='lastName')
    email: Optional[str] = None
    timezone: Optional[str] = Field(None, alias='timeZone')
    status: Literal["Active", "Inactive", "Deleted"] = "Active"

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class AvailabilitySlot(BaseModel):
    """
    One raw recurring weekly slot exactly as it is stored inside an enrollment.
    Values are NOT validated here: a malformed slot must survive loading so the
    expander can skip it on its own without dropping the whole enrollment.
    """
    day: Any = None
    start_time: Any = Field(None, alias='startTime')
    end_time: Any = Field(None, alias='endTime')

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Enrollment(BaseModel):
    """An ongoing student-tutor pairing with its weekly availability pattern."""
    id: str
    created_at: Optional[datetime] = Field(None, alias='createdAt')
    student: Optional[Profile] = None
    tutor: Optional[Profile] = None
    summary: str = ''
    start_date: Optional[Union[datetime, date]] = Field(None, alias='startDate')
    end_date: Optional[Union[datetime, date]] = Field(None, alias='endDate')
    availability: List[AvailabilitySlot] = Field(default_factory=list)
    meeting_id: Optional[str] = Field(None, alias='meetingId')

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Session(BaseModel):
    """One concrete, dated tutoring session. `id` is only known once persisted."""
    id: Optional[str] = None
    created_at: Optional[datetime] = Field(None, alias='createdAt')
    date: datetime
    student_id: str = Field(..., alias='studentId')
    tutor_id: str = Field(..., alias='tutorId')
    status: SessionStatus = SessionStatus.ACTIVE
    summary: str = ''
    meeting_id: Optional[str] = Field(None, alias='meetingId')

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class SessionKeyRow(BaseModel):
    """The three columns of a persisted session that identify it for deduplication."""
    student_id: str
    tutor_id: str
    date: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


class Notification(BaseModel):
    """A reschedule request raised for a session."""
    id: str
    created_at: Optional[datetime] = None
    session_id: str
    previous_date: Optional[datetime] = None
    suggested_date: Optional[datetime] = None
    student_id: Optional[str] = None
    tutor_id: Optional[str] = None
    status: Literal["Active", "Resolved"] = "Active"
    summary: str = ''

    model_config = ConfigDict(frozen=True)


class SessionStore(Protocol):
    """Persistence capability the session expander depends on."""

    def list_session_keys(self) -> List[SessionKeyRow]:
        ...

    def insert_session(self, session: Session) -> Optional[Session]:
        ...


class ProfileLookup(Protocol):
    def get_profile_by_id(self, profile_id: str) -> Optional[Profile]:
        ...
