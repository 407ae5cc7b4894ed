"""
Check-in loop.

One thread, strictly sequential:

  kill date? → register (first time) or status check-in → retry ceiling?
  → jittered sleep → repeat

Transport failures only bump the failure counter. The loop ends when
the kill date passes or the consecutive failure count reaches
max_retry; both are graceful shutdowns (exit code 0).
"""

import time

from .config import log, note
from .jobs import JobHandler, OutboundJobSource
from .messages import Message, MessageType
from .policy import CONTINUE, check_kill_date, check_retry_ceiling
from .scheduler import next_delay, sleep_for
from .transport import Transport


class CheckinOrchestrator:
    def __init__(self, agent, transport: Transport, handler: JobHandler, source: OutboundJobSource, *,
                 clock=time.time, sleeper=time.sleep, rng=None):
        self.agent = agent
        self.transport = transport
        self.handler = handler
        self.source = source
        self._clock = clock
        self._sleeper = sleeper
        self._rng = rng
        self.attempts = 0

    # ─── Loop ────────────────────────────────────────────────

    def run(self):
        """Loop until a termination check fires. Returns the exit code."""
        note("Agent version: %s", self.agent.version)
        note("Agent build: %s", self.agent.build)

        while True:
            decision = self.iterate()
            if decision.terminate:
                log.warning(decision.reason)
                return decision.exit_code

            delay = next_delay(self.agent.wait_time, self.agent.skew, self._rng)
            note("Sleeping for %s at %s", delay, time.strftime(
                "%Y-%m-%dT%H:%M:%SZ", time.gmtime(self._clock())))
            sleep_for(delay, self._sleeper)

    def iterate(self):
        """One loop pass without the sleep. Returns a LoopDecision."""
        decision = check_kill_date(self.agent, self._clock())
        if decision.terminate:
            return decision

        if self.agent.initiated:
            note("Checking in...")
            self.status_check_in()
        elif self.register():
            # Lets the controller answer the registration without waiting a full sleep
            self.status_check_in()

        decision = check_retry_ceiling(self.agent)
        if decision.terminate:
            return decision
        return CONTINUE

    # ─── Exchanges ───────────────────────────────────────────

    def register(self):
        """Initial registration. Returns True once the handshake is complete."""
        info = Message(agent_id=self.agent.id, type=MessageType.AGENT_INFO,
                       payload=self.agent.agent_info())
        self.attempts += 1
        try:
            response = self.transport.register(info)
        except Exception as e:
            self._failed(e)
            return False

        self.agent.reset_failures()
        self.handler.dispatch(response)
        self.agent.mark_initiated(self._clock())
        log.info("Registered with controller as %s", self.agent.id)
        return True

    def status_check_in(self):
        """Send queued work (or a heartbeat) and dispatch the replies. Returns success."""
        log.debug("Entering status_check_in()")
        msg = self.source.build_outbound_message()
        msg.agent_id = self.agent.id

        self.attempts += 1
        try:
            responses = self.transport.send(msg)
        except Exception as e:
            self._failed(e)
            # Put the jobs back so they go out with the next check-in
            if msg.type is MessageType.JOBS:
                self.handler.dispatch(msg)
            return False

        self.agent.record_success(self._clock())
        for response in responses:
            log.debug("Agent ID: %s", response.agent_id)
            log.debug("Message Type: %s", response.type.value)
            log.debug("Message Payload: %r", response.payload)
            self.handler.dispatch(response)
        return True

    def _failed(self, error):
        failed = self.agent.record_failure()
        log.warning("Check-in failed: %s", error)
        note("%d out of %d total failed checkins", failed, self.agent.max_retry)
