"""
Constants: version, build, configuration defaults, timeouts, log levels.
"""

from datetime import timedelta

AGENT_VERSION = "1.4.0"
BUILD = "nonRelease"           # Overridden at startup with --build for release packages

# ─── Configuration defaults ──────────────────────────────────────
DEFAULT_WAIT_TIME = timedelta(milliseconds=30000)   # Base time between check-ins
DEFAULT_SKEW_MS = 3000                              # Max jitter added per cycle
DEFAULT_MAX_RETRY = 7                               # Consecutive failures before quitting
DEFAULT_KILL_DATE = 0                               # 0 → no kill date

# ─── Network ─────────────────────────────────────────────────────
API_TIMEOUT_REGISTER = 30      # Seconds, registration carries the full host info
API_TIMEOUT_CHECKIN = 25       # Seconds per status check-in
REGISTER_PATH = "/api/agent/register"
CHECKIN_PATH = "/api/agent/checkin"

# ─── Termination ─────────────────────────────────────────────────
# Kill date and retry exhaustion are expected shutdowns, not failures.
EXIT_GRACEFUL = 0

# ─── Logging ─────────────────────────────────────────────────────
NOTE = 25                      # Between INFO (20) and WARNING (30)
LOG_MAX_BYTES = 1_000_000      # Truncate the log file on startup above this size

# ─── Limits ──────────────────────────────────────────────────────
# Durations must fit in int64 nanoseconds (what time.sleep converts to)
MAX_DURATION = timedelta(days=106751)
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
