'''
This file is responsible to generate the week's sessions from all enrollments
'''
import json
from typing import Any, List, Optional, Tuple

from ..database.db_handler import DatabaseHandler
from ..common.logger import logger
from .base_classes import Session
from .session_expander import add_sessions, current_week_window

class HandleSessionGeneration:
    """
    Generates the sessions of one window (the current week by default) for
    every enrollment in the database.
    """
    def __init__(self, db_handler: DatabaseHandler, payload: Any = None):
        self.db_handler = db_handler
        self.week_start_iso, self.week_end_iso = self._resolve_window(payload)
        self.created_sessions: List[Session] = []
        self.run_generation()

    @staticmethod
    def _resolve_window(payload: Any) -> Tuple[str, str]:
        """
        Reads {"week_start": ISO, "week_end": ISO} from the trigger payload.
        An empty payload means the current week.
        """
        if isinstance(payload, str):
            payload = json.loads(payload) if payload.strip() else None

        if payload:
            week_start: Optional[str] = payload.get("week_start")
            week_end: Optional[str] = payload.get("week_end")
            if not week_start or not week_end:
                raise ValueError(f"Payload needs both 'week_start' and 'week_end': {payload}")
            return week_start, week_end

        week_start_dt, week_end_dt = current_week_window()
        return week_start_dt.isoformat(), week_end_dt.isoformat()

    def run_generation(self):
        logger.info(f"Generating sessions from {self.week_start_iso} to {self.week_end_iso}...")

        enrollments = self.db_handler.get_all_enrollments()
        if not enrollments:
            logger.warning("No enrollments found. Nothing to generate.")
            return

        logger.info(f"Found {len(enrollments)} enrollments to expand.")
        self.created_sessions = add_sessions(
            self.db_handler, self.week_start_iso, self.week_end_iso, enrollments
        )
        logger.info(f"Session generation finished, {len(self.created_sessions)} sessions created.")
