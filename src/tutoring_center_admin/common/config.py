'''
Configuration constants for the application
'''
# Channel the admin dashboard notifies when "generate this week's sessions" is pressed
GENERATE_SESSIONS_CHANNEL = "generate_sessions_requested"

# Channel notified when an admin accepts a reschedule request
RESCHEDULE_CHANNEL = "reschedule_request_resolved"

# The tutoring center's wall-clock timezone. Aware timestamps are converted into it. (IANA format)
DEFAULT_TIMEZONE = "America/New_York"

# Minute-granularity format used inside session deduplication keys
SESSION_KEY_TIME_FORMAT = "%Y-%m-%d-%H:%M"

# Status given to every session created from an enrollment's availability
DEFAULT_SESSION_STATUS = "Active"

# Where the logger writes besides stdout
LOG_FILE = "log_file.log"
