"""
Transport contract and the HTTP/JSON implementation.

The check-in loop only sees two blocking calls, register() and send().
Each returns a result or raises; it never returns a partial result.
"""

from typing import List, Protocol, runtime_checkable

import requests

from .constants import API_TIMEOUT_REGISTER, API_TIMEOUT_CHECKIN, REGISTER_PATH, CHECKIN_PATH
from .config import log
from .messages import Message
from . import http_client


class TransportError(Exception):
    """A communication attempt with the controller failed."""


@runtime_checkable
class Transport(Protocol):
    def register(self, info: Message) -> Message:
        ...

    def send(self, message: Message) -> List[Message]:
        ...


class HttpTransport:
    """POSTs JSON envelopes to the controller over a pooled requests session."""

    def __init__(self, server_url, session=None, verify=True,
                 register_timeout=API_TIMEOUT_REGISTER, checkin_timeout=API_TIMEOUT_CHECKIN):
        if not server_url:
            raise ValueError("server_url is required")
        self.server_url = server_url.rstrip("/")
        self.session = session or http_client.create_session(verify=verify)
        self.register_timeout = register_timeout
        self.checkin_timeout = checkin_timeout

    def reset(self):
        self.session = http_client.reset_session(self.session)

    def _post(self, path, body, timeout):
        url = f"{self.server_url}{path}"
        try:
            resp = self.session.post(url, json=body, timeout=timeout)
        except requests.RequestException as e:
            self.reset()
            raise TransportError(f"network error talking to {url}: {e}") from e

        if resp.status_code == 401:
            raise TransportError(f"controller rejected the agent (401) at {url}")
        if resp.status_code != 200:
            raise TransportError(f"HTTP {resp.status_code} from {url}: {resp.text[:200]}")
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"invalid JSON from {url}: {e}") from e

    def register(self, info):
        data = self._post(REGISTER_PATH, info.to_dict(), self.register_timeout)
        try:
            return Message.from_dict(data)
        except ValueError as e:
            raise TransportError(f"malformed registration response: {e}") from e

    def send(self, message):
        data = self._post(CHECKIN_PATH, message.to_dict(), self.checkin_timeout)
        if data is None:
            return []
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise TransportError(f"expected a list of messages, got {type(data).__name__}")
        try:
            messages = [Message.from_dict(item) for item in data]
        except ValueError as e:
            raise TransportError(f"malformed check-in response: {e}") from e
        log.debug("Received %d message(s) from controller", len(messages))
        return messages
