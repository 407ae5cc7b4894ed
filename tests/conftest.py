"""Shared fixtures and test doubles for the check-in agent tests."""

import random
import uuid

import pytest

from checkin_core.config import log, AgentConfig
from checkin_core.hostinfo import HostFacts
from checkin_core.jobs import JobQueue
from checkin_core.messages import Message, MessageType
from checkin_core.orchestrator import CheckinOrchestrator
from checkin_core.state import Agent
from checkin_core.transport import TransportError

AGENT_ID = uuid.UUID("6f1c2b7e-0d55-4c57-9a8e-2f3d4b5a6c7d")


class ScriptedTransport:
    """Transport double that replays scripted outcomes.

    Each script entry is either an exception (raised) or a return value.
    Once a script runs out, register() answers IDLE and send() answers [].
    """

    def __init__(self, register=None, send=None):
        self.register_script = list(register or [])
        self.send_script = list(send or [])
        self.calls = []

    def _next(self, script, default):
        outcome = script.pop(0) if script else default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def register(self, info):
        self.calls.append(("register", info))
        return self._next(self.register_script, Message(type=MessageType.IDLE))

    def send(self, message):
        payload = list(message.payload) if isinstance(message.payload, list) else message.payload
        self.calls.append(("send", Message(message.agent_id, message.type, payload)))
        return self._next(self.send_script, [])

    @property
    def kinds(self):
        return [kind for kind, _ in self.calls]

    def sent(self):
        return [msg for kind, msg in self.calls if kind == "send"]


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


class RecordingSleeper:
    """Records requested sleeps and advances the fake clock instead of blocking."""

    def __init__(self, clock=None):
        self.clock = clock
        self.sleeps = []

    def __call__(self, seconds):
        self.sleeps.append(seconds)
        if self.clock is not None:
            self.clock.now += seconds


def fail(reason="connection refused"):
    return TransportError(reason)


@pytest.fixture(autouse=True)
def _reset_agent_logger():
    """configure_logging() detaches the logger from root; put it back for caplog."""
    yield
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()
    log.propagate = True
    log.setLevel(0)


@pytest.fixture
def facts():
    return HostFacts(
        platform="linux",
        architecture="x86_64",
        username="svc",
        user_guid="1000:1000",
        hostname="host-01",
        process="/usr/bin/python3",
        pid=4242,
        ips=["10.0.0.5/255.255.255.0"],
        integrity=2,
    )


@pytest.fixture
def make_agent(facts):
    def _make(sleep="", skew="0", max_retry="", kill_date=""):
        config = AgentConfig(sleep=sleep, skew=skew, max_retry=max_retry, kill_date=kill_date)
        return Agent.new(config, facts=facts, id_factory=lambda: AGENT_ID)
    return _make


@pytest.fixture
def agent(make_agent):
    return make_agent(sleep="30s", skew="0", max_retry="3")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeper(clock):
    return RecordingSleeper(clock)


@pytest.fixture
def make_orchestrator(clock, sleeper):
    def _make(agent, transport, queue=None):
        queue = queue or JobQueue(agent)
        return CheckinOrchestrator(
            agent, transport, queue, queue,
            clock=clock, sleeper=sleeper, rng=random.Random(7),
        )
    return _make
