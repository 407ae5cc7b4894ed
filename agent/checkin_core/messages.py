"""
Messages exchanged with the controller.

Only the envelope is defined here: who sent it, what kind it is, and an
opaque payload. Encoding on the wire is the transport's business.
"""

import enum
import uuid
from dataclasses import dataclass, field


class MessageType(enum.Enum):
    CHECKIN = "checkin"          # Heartbeat, nothing queued
    JOBS = "jobs"                # Carries a list of jobs or job results
    AGENT_INFO = "agentinfo"     # Host facts + current settings
    CONTROL = "control"          # Controller changes an agent setting
    IDLE = "idle"                # Controller has nothing for us


@dataclass
class Message:
    agent_id: uuid.UUID = None
    type: MessageType = MessageType.CHECKIN
    payload: object = field(default=None)

    def to_dict(self):
        return {
            "id": str(self.agent_id) if self.agent_id else None,
            "type": self.type.value,
            "payload": self.payload,
        }

    @classmethod
    def from_dict(cls, data):
        """Raises ValueError on an unknown type or a malformed id."""
        if not isinstance(data, dict):
            raise ValueError(f"message must be an object, got {type(data).__name__}")
        raw_id = data.get("id")
        return cls(
            agent_id=uuid.UUID(str(raw_id)) if raw_id else None,
            type=MessageType(data.get("type", MessageType.IDLE.value)),
            payload=data.get("payload"),
        )
