'''
Universal Logger logic for all the application. it will print into terminal and a seperate log_file.log
'''
import logging
import sys
from pathlib import Path

from .config import LOG_FILE

class DirectoryFormatter(logging.Formatter):
    def format(self, record):
        # Tag every record with the package sub-directory it came from (core, database, ...)
        if hasattr(record, 'pathname') and record.pathname:
            record.directory = Path(record.pathname).parent.name
        else:
            record.directory = 'Unknown'

        return super().format(record)

logger = logging.getLogger('tutoring-admin')
logger.setLevel(logging.INFO)

formatter = DirectoryFormatter(
    '%(asctime)s - %(name)s - %(directory)s - %(levelname)s - %(message)s',
    datefmt='%H:%M:%S'
)

file_handler = logging.FileHandler(LOG_FILE)
file_handler.setLevel(logging.INFO)
file_handler.setFormatter(formatter)

stream_handler = logging.StreamHandler(sys.stdout)
stream_handler.setFormatter(formatter)

if not logger.handlers:
    logger.addHandler(file_handler)
    logger.addHandler(stream_handler)
