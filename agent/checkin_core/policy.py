"""
Lifecycle policy: pure decisions evaluated once per loop iteration.

Nothing here exits the process. Checks return a LoopDecision and the
loop driver acts on it, so the rules can be tested in-process.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timezone

from .constants import EXIT_GRACEFUL


class HandshakeState(enum.Enum):
    UNINITIATED = "uninitiated"
    INITIATED = "initiated"


class LoopAction(enum.Enum):
    CONTINUE = "continue"
    TERMINATE = "terminate"


@dataclass(frozen=True)
class LoopDecision:
    action: LoopAction
    exit_code: int = EXIT_GRACEFUL
    reason: str = ""

    @property
    def terminate(self) -> bool:
        return self.action is LoopAction.TERMINATE


CONTINUE = LoopDecision(LoopAction.CONTINUE)


def terminate(reason, exit_code=EXIT_GRACEFUL):
    return LoopDecision(LoopAction.TERMINATE, exit_code=exit_code, reason=reason)


# ─── Predicates ──────────────────────────────────────────────────

def should_terminate_by_kill_date(now, kill_date) -> bool:
    """True iff a kill date is set and has been reached. Both are unix seconds."""
    return kill_date != 0 and now >= kill_date


def should_terminate_by_retry_exhaustion(failed_checkins, max_retry) -> bool:
    return failed_checkins >= max_retry


def next_handshake_state(current, registration_ok) -> HandshakeState:
    """Advance on the first successful registration; never go back."""
    if current is HandshakeState.INITIATED or registration_ok:
        return HandshakeState.INITIATED
    return HandshakeState.UNINITIATED


def _format_unix(ts):
    """RFC 3339 UTC, or the raw number when it is outside the datetime range."""
    try:
        when = datetime.fromtimestamp(ts, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return str(ts)
    return when.isoformat().replace("+00:00", "Z")


# ─── Checks over Agent state ─────────────────────────────────────

def check_kill_date(agent, now) -> LoopDecision:
    if should_terminate_by_kill_date(now, agent.kill_date):
        return terminate(f"agent kill date has been exceeded: {_format_unix(agent.kill_date)}")
    return CONTINUE


def check_retry_ceiling(agent) -> LoopDecision:
    if should_terminate_by_retry_exhaustion(agent.failed_checkins, agent.max_retry):
        return terminate(
            f"maximum number of failed checkin attempts reached: {agent.max_retry}"
        )
    return CONTINUE
