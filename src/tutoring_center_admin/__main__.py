'''
main entry point of this background worker
Contains and executes the Main Routine
'''
import argparse
import time
import psycopg2
import sys
from tutoring_center_admin.database.db_handler import DatabaseHandler
from tutoring_center_admin.common.logger import logger
from tutoring_center_admin.common.exceptions import SessionIndexLoadError
from tutoring_center_admin.core.main_handler import HandleTrigger
from tutoring_center_admin.core.session_expander import add_sessions, current_week_window

def _connect() -> DatabaseHandler:
    try:
        db_handler = DatabaseHandler()
    except (ValueError, psycopg2.OperationalError) as e:
        logger.critical(f"Worker failed to start due to database initialization error: {e}")
        sys.exit(1)
    db_handler.ensure_session_dedup_index()
    return db_handler

def main_routine():
    """
    The main background worker routine.
    """
    logger.info("Tutoring Center Admin Worker is starting...")
    db_handler = _connect()

    try:
        while True:
            notification = db_handler.listen_for_notification()
            if notification:
                HandleTrigger(db_handler, *notification)

            time.sleep(1)

    except KeyboardInterrupt:
        logger.info("Worker shutting down gracefully due to user request (Ctrl+C).")
    except Exception as e:
        logger.exception(f"An unexpected error occurred in the main loop: {e}")
        sys.exit(1)

def generate_once(week_start_iso: str | None, week_end_iso: str | None) -> int:
    """Generates one window of sessions and returns how many were created."""
    if not week_start_iso or not week_end_iso:
        week_start, week_end = current_week_window()
        week_start_iso, week_end_iso = week_start.isoformat(), week_end.isoformat()

    db_handler = _connect()
    enrollments = db_handler.get_all_enrollments()
    try:
        created = add_sessions(db_handler, week_start_iso, week_end_iso, enrollments)
    except SessionIndexLoadError as e:
        logger.critical(f"Session generation aborted: {e}")
        sys.exit(1)
    return len(created)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tutoring_center_admin")
    commands = parser.add_subparsers(dest="command")

    commands.add_parser("listen", help="run the notification worker (default)")

    generate = commands.add_parser("generate", help="generate one window of sessions and exit")
    generate.add_argument("--week-start", help="ISO 8601 start of the window, defaults to this Monday 00:00")
    generate.add_argument("--week-end", help="ISO 8601 end of the window, defaults to this Sunday 23:59:59")
    return parser

def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.command == "generate":
        if bool(args.week_start) != bool(args.week_end):
            logger.error("--week-start and --week-end must be given together.")
            sys.exit(2)
        created = generate_once(args.week_start, args.week_end)
        logger.info(f"Done. {created} sessions created.")
    else:
        main_routine()

if __name__ == "__main__":
    main()
