"""
Paths, logging setup, config load, and parsing of the string-typed
agent settings (sleep, skew, kill date, max retry).

Every parser falls back to its documented default on bad input and
reports the problem. A typo in the config must never stop the agent.
"""

import os
import re
import sys
import json
import logging
from dataclasses import dataclass, replace
from datetime import timedelta
from pathlib import Path

from .constants import (
    DEFAULT_WAIT_TIME, DEFAULT_SKEW_MS, DEFAULT_MAX_RETRY, DEFAULT_KILL_DATE,
    NOTE, LOG_MAX_BYTES, MAX_DURATION, INT64_MIN, INT64_MAX,
)


# ─── Paths ───────────────────────────────────────────────────────
_FOLDER_NAME = "CheckinAgent"

if sys.platform == "win32":
    BASE_DIR = Path(os.environ.get("PROGRAMDATA", "C:\\ProgramData")) / _FOLDER_NAME
else:
    BASE_DIR = Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state")) / _FOLDER_NAME

CONFIG_FILE = BASE_DIR / "config.json"
LOG_FILE = BASE_DIR / "agent.log"


# ─── Logging ─────────────────────────────────────────────────────

logging.addLevelName(NOTE, "NOTE")
log = logging.getLogger("checkin")

_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(debug=False, log_file=LOG_FILE):
    """Attach file + console handlers to the agent logger.

    The file log is truncated once it grows past LOG_MAX_BYTES. Passing
    log_file=None keeps output on the console only.
    """
    level = logging.DEBUG if debug else logging.INFO
    log.setLevel(level)
    log.propagate = False
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()

    if log_file is not None:
        log_file = Path(log_file)
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            if log_file.exists() and log_file.stat().st_size > LOG_MAX_BYTES:
                log_file.write_text("")
            file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
            log.addHandler(file_handler)
        except OSError as e:
            # Console logging still works, so this is not fatal
            sys.stderr.write(f"Cannot open log file {log_file}: {e}\n")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(_FORMAT))
    log.addHandler(console_handler)
    return log


def note(msg, *args):
    """Log at the NOTE level (routine progress worth seeing by default)."""
    log.log(NOTE, msg, *args)


# ─── Config Management ──────────────────────────────────────────

def load_config(path=CONFIG_FILE):
    """Load config from disk. Returns dict or None."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        log.warning("Could not read config file %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        log.warning("Config file %s does not hold a JSON object, ignoring it", path)
        return None
    return data


@dataclass
class AgentConfig:
    """Raw, string-typed agent settings. Empty string means "use default"."""
    sleep: str = ""
    skew: str = ""
    kill_date: str = ""
    max_retry: str = ""
    server_url: str = ""
    verify_tls: bool = True

    @classmethod
    def from_mapping(cls, data):
        """Build from the JSON config keys. Unknown keys are ignored."""
        data = data or {}

        def text(key):
            value = data.get(key)
            return "" if value is None else str(value).strip()

        return cls(
            sleep=text("sleep"),
            skew=text("skew"),
            kill_date=text("killDate"),
            max_retry=text("maxRetry"),
            server_url=text("serverUrl").rstrip("/"),
            verify_tls=parse_bool(data.get("verifyTls"), True, "verifyTls"),
        )

    def merged(self, **overrides):
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)


# ─── Parsers ────────────────────────────────────────────────────

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text):
    """
    Parse a duration like "30s", "1m30s", "500ms" or "1.5h".
    Returns timedelta. Raises ValueError on malformed input.
    A bare "0" is accepted; any other number needs a unit.
    """
    s = text.strip()
    if not s:
        raise ValueError("empty duration")
    sign = 1
    if s[0] in "+-":
        sign = -1 if s[0] == "-" else 1
        s = s[1:]
    if s == "0":
        return timedelta(0)

    total = 0.0
    pos = 0
    while pos < len(s):
        match = _DURATION_PART.match(s, pos)
        if not match:
            raise ValueError(f"invalid duration {text!r}")
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()
    if total > MAX_DURATION.total_seconds():
        raise ValueError(f"duration {text!r} is out of range")
    return timedelta(seconds=sign * total)


def parse_sleep(text):
    """Sleep time as timedelta. Empty, malformed, or negative → 30s default."""
    if not text:
        return DEFAULT_WAIT_TIME
    try:
        wait = parse_duration(text)
    except (ValueError, OverflowError) as e:
        log.warning("There was an error converting the sleep time %r: %s", text, e)
        return DEFAULT_WAIT_TIME
    if wait < timedelta(0):
        log.warning("Sleep time %r is negative, using %s", text, DEFAULT_WAIT_TIME)
        return DEFAULT_WAIT_TIME
    return wait


def _parse_int(text, default, what):
    if not text:
        return default
    try:
        value = int(text, 10)
    except ValueError as e:
        log.warning("There was an error converting the %s to an integer: %s", what, e)
        return default
    if not INT64_MIN <= value <= INT64_MAX:
        log.warning("The %s %s is out of range for a 64-bit integer", what, text)
        return default
    return value


_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def parse_bool(value, default, what):
    """JSON true/false, or the strings true/false, 1/0, yes/no, on/off."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    log.warning("There was an error converting %s %r to a boolean, using %s", what, value, default)
    return default


def parse_skew(text):
    """Skew in milliseconds. Zero or negative disables jitter."""
    return _parse_int(text, DEFAULT_SKEW_MS, "skew")


def parse_max_retry(text):
    return _parse_int(text, DEFAULT_MAX_RETRY, "max retry")


def parse_kill_date(text):
    """Kill date as a unix timestamp in seconds. 0 disables it."""
    return _parse_int(text, DEFAULT_KILL_DATE, "kill date")
