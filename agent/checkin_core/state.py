"""
Agent — single source of truth for the check-in lifecycle state.

Owned by the check-in loop; nothing else mutates it, so no locks.
Only Agent.new() builds a usable instance: identity, host facts and
parsed configuration are resolved there, once, for the whole run.
"""

import uuid
from dataclasses import dataclass, field, InitVar
from datetime import datetime, timedelta, timezone

from .constants import (
    AGENT_VERSION, BUILD,
    DEFAULT_WAIT_TIME, DEFAULT_SKEW_MS, DEFAULT_MAX_RETRY, DEFAULT_KILL_DATE,
)
from .config import log, AgentConfig, parse_sleep, parse_skew, parse_max_retry, parse_kill_date
from .hostinfo import HostFacts, collect_host_facts
from .policy import HandshakeState, next_handshake_state

_FACTORY_KEY = object()


def _utc(ts):
    return datetime.fromtimestamp(ts, tz=timezone.utc)


@dataclass
class Agent:
    _id: uuid.UUID = None
    facts: HostFacts = field(default_factory=HostFacts)
    version: str = AGENT_VERSION
    build: str = BUILD

    # ── Configuration (parsed, defaults applied) ──────────────
    wait_time: timedelta = DEFAULT_WAIT_TIME
    skew: int = DEFAULT_SKEW_MS
    max_retry: int = DEFAULT_MAX_RETRY
    kill_date: int = DEFAULT_KILL_DATE

    # ── Lifecycle ─────────────────────────────────────────────
    handshake_state: HandshakeState = HandshakeState.UNINITIATED
    failed_checkins: int = 0
    initial_checkin_time: datetime = None
    last_checkin_time: datetime = None

    _factory_key: InitVar[object] = None

    def __post_init__(self, _factory_key):
        if _factory_key is not _FACTORY_KEY:
            raise TypeError("Agent instances must be created with Agent.new()")

    @classmethod
    def new(cls, config=None, facts=None, version=AGENT_VERSION, build=BUILD,
            id_factory=uuid.uuid4):
        """Create a fully initialized Agent.

        config: AgentConfig with raw string settings; bad values fall back
        to the defaults with a warning. facts: HostFacts, collected from
        the running host when omitted.
        """
        log.debug("Entering Agent.new()")
        config = config or AgentConfig()
        agent = cls(
            _id=id_factory(),
            facts=facts if facts is not None else collect_host_facts(),
            version=version,
            build=build,
            wait_time=parse_sleep(config.sleep),
            skew=parse_skew(config.skew),
            max_retry=parse_max_retry(config.max_retry),
            kill_date=parse_kill_date(config.kill_date),
            _factory_key=_FACTORY_KEY,
        )
        agent.log_host_info()
        log.debug("Leaving Agent.new()")
        return agent

    @property
    def id(self):
        return self._id

    @property
    def initiated(self):
        return self.handshake_state is HandshakeState.INITIATED

    def log_host_info(self):
        f = self.facts
        log.info("Host Information:")
        log.info("\tAgent UUID: %s", self.id)
        log.info("\tPlatform: %s", f.platform)
        log.info("\tArchitecture: %s", f.architecture)
        log.info("\tUser Name: %s", f.username)
        log.info("\tUser GUID: %s", f.user_guid)
        log.info("\tIntegrity Level: %d", f.integrity)
        log.info("\tHostname: %s", f.hostname)
        log.info("\tProcess: %s", f.process)
        log.info("\tPID: %d", f.pid)
        log.info("\tIPs: %s", f.ips)

    def agent_info(self):
        """Registration payload: host facts plus identity and current settings."""
        return {
            "id": str(self.id),
            "version": self.version,
            "build": self.build,
            "waitTime": _format_duration(self.wait_time),
            "skew": self.skew,
            "maxRetry": self.max_retry,
            "failedCheckin": self.failed_checkins,
            "killDate": self.kill_date,
            "sysInfo": self.facts.as_dict(),
        }

    # ── Lifecycle transitions ─────────────────────────────────

    def mark_initiated(self, now):
        """UNINITIATED → INITIATED. A second call is a no-op."""
        if self.initiated:
            return
        self.handshake_state = next_handshake_state(self.handshake_state, True)
        self.initial_checkin_time = _utc(now)

    def record_success(self, now):
        self.failed_checkins = 0
        self.last_checkin_time = _utc(now)

    def reset_failures(self):
        self.failed_checkins = 0

    def record_failure(self):
        self.failed_checkins += 1
        return self.failed_checkins

    # ── Runtime setting changes (same fallback rules as startup) ──

    def set_wait_time(self, text):
        self.wait_time = parse_sleep(text)

    def set_skew(self, text):
        self.skew = parse_skew(text)

    def set_max_retry(self, text):
        self.max_retry = parse_max_retry(text)

    def set_kill_date(self, text):
        self.kill_date = parse_kill_date(text)


def _format_duration(td):
    """timedelta → "1m30s" / "500ms" style string."""
    ms = int(round(td.total_seconds() * 1000))
    if ms % 1000:
        return f"{ms}ms"
    seconds = ms // 1000
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    out = ""
    if hours:
        out += f"{hours}h"
    if minutes:
        out += f"{minutes}m"
    if secs or not out:
        out += f"{secs}s"
    return out
