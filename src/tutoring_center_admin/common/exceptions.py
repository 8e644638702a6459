'''
Exceptions raised by the session generation logic
'''

class TutoringAdminError(Exception):
    """Base class for all errors raised by this package."""


class InvalidTimeSlotError(TutoringAdminError, ValueError):
    """An availability slot could not be turned into a day + start/end time."""


class SessionIndexLoadError(TutoringAdminError):
    """
    The already-persisted sessions could not be read. Generating anyway could
    create duplicates, so the whole run is aborted before any write.
    """
