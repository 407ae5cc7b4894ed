"""Tests for the HTTP transport and session setup."""

from unittest import mock

import pytest
import requests

from checkin_core import http_client
from checkin_core.messages import Message, MessageType
from checkin_core.transport import HttpTransport, Transport, TransportError

from conftest import AGENT_ID, ScriptedTransport


def _response(status=200, body=None, bad_json=False):
    resp = mock.Mock(status_code=status, text=str(body))
    if bad_json:
        resp.json.side_effect = ValueError("Expecting value")
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def session():
    s = mock.Mock(spec=requests.Session)
    s.verify = True
    return s


class TestProtocol:
    def test_implementations_satisfy_protocol(self, session):
        assert isinstance(HttpTransport("http://controller.local", session=session), Transport)
        assert isinstance(ScriptedTransport(), Transport)

    def test_url_required(self):
        with pytest.raises(ValueError):
            HttpTransport("")


class TestRegister:
    def test_posts_agent_info(self, session):
        session.post.return_value = _response(body={"id": str(AGENT_ID), "type": "idle"})
        transport = HttpTransport("https://controller.example/", session=session)
        info = Message(AGENT_ID, MessageType.AGENT_INFO, {"hostName": "h"})

        reply = transport.register(info)

        session.post.assert_called_once_with(
            "https://controller.example/api/agent/register",
            json={"id": str(AGENT_ID), "type": "agentinfo", "payload": {"hostName": "h"}},
            timeout=30,
        )
        assert reply.type is MessageType.IDLE
        assert reply.agent_id == AGENT_ID

    def test_malformed_reply(self, session):
        session.post.return_value = _response(body={"type": "bogus"})
        transport = HttpTransport("https://controller.example", session=session)

        with pytest.raises(TransportError, match="malformed registration response"):
            transport.register(Message(AGENT_ID, MessageType.AGENT_INFO, {}))


class TestSend:
    def test_list_of_messages(self, session):
        session.post.return_value = _response(body=[
            {"id": str(AGENT_ID), "type": "jobs", "payload": [{"id": "a", "kind": "shell"}]},
            {"id": str(AGENT_ID), "type": "idle"},
        ])
        transport = HttpTransport("https://controller.example", session=session)

        replies = transport.send(Message(AGENT_ID, MessageType.CHECKIN))

        assert [r.type for r in replies] == [MessageType.JOBS, MessageType.IDLE]
        assert replies[0].payload == [{"id": "a", "kind": "shell"}]
        _, kwargs = session.post.call_args
        assert kwargs["timeout"] == 25

    def test_single_object_and_null(self, session):
        transport = HttpTransport("https://controller.example", session=session)

        session.post.return_value = _response(body={"type": "idle"})
        assert len(transport.send(Message(AGENT_ID))) == 1

        session.post.return_value = _response(body=None)
        assert transport.send(Message(AGENT_ID)) == []

    @pytest.mark.parametrize("resp, match", [
        (_response(status=500, body="oops"), "HTTP 500"),
        (_response(status=401, body="nope"), "rejected"),
        (_response(bad_json=True), "invalid JSON"),
        (_response(body="just a string"), "expected a list"),
        (_response(body=[{"type": "nonsense"}]), "malformed check-in response"),
    ])
    def test_failures_raise_transport_error(self, session, resp, match):
        session.post.return_value = resp
        transport = HttpTransport("https://controller.example", session=session)

        with pytest.raises(TransportError, match=match):
            transport.send(Message(AGENT_ID))

    def test_network_error_resets_session(self, session):
        session.post.side_effect = requests.ConnectionError("refused")
        transport = HttpTransport("https://controller.example", session=session)

        with pytest.raises(TransportError, match="network error"):
            transport.send(Message(AGENT_ID))

        session.close.assert_called_once()
        assert transport.session is not session
        assert isinstance(transport.session, requests.Session)


class TestSession:
    def test_create_session_mounts_retrying_adapter(self):
        session = http_client.create_session(verify=False)

        adapter = session.get_adapter("https://controller.example")
        assert adapter.max_retries.total == 3
        assert 503 in adapter.max_retries.status_forcelist
        assert session.verify is False

    def test_reset_keeps_verify(self):
        session = http_client.create_session(verify=False)
        fresh = http_client.reset_session(session)
        assert fresh is not session
        assert fresh.verify is False
