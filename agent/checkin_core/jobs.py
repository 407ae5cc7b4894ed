"""
Job queues for inbound work from the controller and outbound results.

A job is a plain dict with at least "id" and "kind". Result-like kinds
("result", "agentinfo") travel agent → controller; everything else is
work for the local executor, which is not part of this package.

JobQueue is both the job handler (dispatch) and the outbound job
source (build_outbound_message) for the check-in loop. When a check-in
that carried results fails, the loop dispatches that same message back
here and the results go to the front of the outbound queue, in their
original order, ready for the next attempt.
"""

from collections import deque
from typing import Protocol

from .config import log
from .messages import Message, MessageType

RESULT = "result"
AGENT_INFO = "agentinfo"
CONTROL = "control"
OUTBOUND_KINDS = frozenset({RESULT, AGENT_INFO})


class JobHandler(Protocol):
    def dispatch(self, message: Message) -> None:
        ...


class OutboundJobSource(Protocol):
    def build_outbound_message(self) -> Message:
        ...


class ControlHandler:
    """Applies controller-issued setting changes to the Agent."""

    def __init__(self, agent, queue):
        self._queue = queue
        self._commands = {
            "sleep": agent.set_wait_time,
            "skew": agent.set_skew,
            "maxretry": agent.set_max_retry,
            "killdate": agent.set_kill_date,
        }

    def apply(self, job):
        if not isinstance(job, dict):
            log.warning("Malformed control message: %r", job)
            return False
        command = str(job.get("command", "")).lower()
        args = job.get("args") or []

        if command == AGENT_INFO:
            self._queue.add_agent_info(job.get("id"))
            return True

        setter = self._commands.get(command)
        if setter is None:
            log.warning("Unknown control command %r, ignoring", command)
            return False
        if not args:
            log.warning("Control command %r is missing its argument, ignoring", command)
            return False

        setter(str(args[0]))
        log.info("Control: %s set to %s", command, args[0])
        # Let the controller see the effective settings on the next check-in
        self._queue.add_agent_info(job.get("id"))
        return True


class JobQueue:
    def __init__(self, agent):
        self._agent = agent
        self._inbound = deque()
        self._outbound = deque()
        self.control = ControlHandler(agent, self)

    # ─── Inbound ─────────────────────────────────────────────

    @property
    def inbound_pending(self):
        return len(self._inbound)

    def pop_inbound(self):
        """Next job for the executor, or None."""
        return self._inbound.popleft() if self._inbound else None

    def dispatch(self, message):
        """Route one message from the controller (or a re-queued outbound one)."""
        log.debug("Dispatching %s message", message.type.value)

        if message.type is MessageType.JOBS:
            jobs = message.payload or []
            if not isinstance(jobs, (list, tuple)):
                log.warning("Dropping jobs message with a non-list payload: %r", jobs)
                return
            self._dispatch_jobs(jobs)
        elif message.type is MessageType.CONTROL:
            self.control.apply(message.payload or {})
        elif message.type in (MessageType.CHECKIN, MessageType.IDLE):
            log.debug("Controller has no work for us")
        else:
            log.debug("Ignoring %s message", message.type.value)

    def _dispatch_jobs(self, jobs):
        requeued = []
        for job in jobs:
            kind = job.get("kind") if isinstance(job, dict) else None
            if kind in OUTBOUND_KINDS:
                requeued.append(job)
            elif kind == CONTROL:
                self.control.apply(job)
            elif kind:
                self._inbound.append(job)
            else:
                log.warning("Dropping job without a kind: %r", job)
        if requeued:
            self._outbound.extendleft(reversed(requeued))
            log.info("Re-queued %d outbound job(s)", len(requeued))

    # ─── Outbound ────────────────────────────────────────────

    @property
    def outbound_pending(self):
        return len(self._outbound)

    def add_result(self, job_id, output="", error=""):
        self._outbound.append({"id": job_id, "kind": RESULT, "output": output, "error": error})

    def add_agent_info(self, job_id=None):
        self._outbound.append({"id": job_id, "kind": AGENT_INFO, "info": self._agent.agent_info()})

    def build_outbound_message(self):
        """A JOBS message holding every pending result, or a plain CHECKIN heartbeat."""
        if not self._outbound:
            return Message(agent_id=self._agent.id, type=MessageType.CHECKIN)
        jobs = list(self._outbound)
        self._outbound.clear()
        return Message(agent_id=self._agent.id, type=MessageType.JOBS, payload=jobs)
