'''
This file dispatches every notification the worker receives to the task it triggers
'''
from typing import Any

from ..database.db_handler import DatabaseHandler
from ..common.logger import logger
from ..common.config import GENERATE_SESSIONS_CHANNEL, RESCHEDULE_CHANNEL
from .session_generation import HandleSessionGeneration
from .reschedule_handler import HandleRescheduleRequest

class HandleTrigger:
    """
    Main orchestrator for the worker's tasks. Picks the task from the channel
    the notification arrived on.
    """
    def __init__(self, db_handler: DatabaseHandler, channel: str, payload: Any):
        self.db_handler = db_handler
        self.channel = channel
        self.payload = payload
        self.task = None

        if channel == GENERATE_SESSIONS_CHANNEL:
            try:
                self.task = HandleSessionGeneration(self.db_handler, self.payload)
            except Exception as e:
                logger.exception(f"An error occurred during session generation: {e}")

        elif channel == RESCHEDULE_CHANNEL:
            try:
                self.task = HandleRescheduleRequest(self.db_handler, self.payload)
            except Exception as e:
                logger.exception(f"An error occurred while applying reschedule request '{payload}': {e}")

        else:
            logger.warning(f"Ignoring notification on unknown channel '{channel}'.")
