'''
This file applies an accepted reschedule request to its session
'''
from ..database.db_handler import DatabaseHandler
from ..common.logger import logger

class HandleRescheduleRequest:
    """
    Moves the session of a reschedule notification to the suggested date and
    resolves the notification.
    """
    def __init__(self, db_handler: DatabaseHandler, notification_id: str):
        self.db_handler = db_handler
        self.notification_id = str(notification_id).strip()
        self.applied = False
        self.run_reschedule()

    def run_reschedule(self):
        notification = self.db_handler.get_notification_by_id(self.notification_id)
        if notification is None:
            logger.warning(f"Reschedule request {self.notification_id} not found. Ignoring.")
            return
        if notification.status == "Resolved":
            logger.info(f"Reschedule request {self.notification_id} is already resolved.")
            return
        if notification.suggested_date is None:
            logger.warning(f"Reschedule request {self.notification_id} has no suggested date. Ignoring.")
            return

        if not self.db_handler.reschedule_session(notification.session_id, notification.suggested_date):
            logger.error(f"Could not move session {notification.session_id}. Leaving request open.")
            return

        self.db_handler.update_notification_status(self.notification_id, "Resolved")
        self.applied = True
