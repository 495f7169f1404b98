"""
Frame records carried on the stream and the messages that wrap them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from models.errors import InvalidRecordError

FRAME_REFERENCE_FIELD = "frame_reference"
TIMESTAMP_FIELD = "timestamp"


def rfc3339_now() -> str:
    """Current time as an RFC3339 string with second precision."""
    return datetime.now(timezone.utc).astimezone().isoformat(timespec="seconds")


@dataclass(frozen=True)
class FrameRecord:
    """
    A reference to one frame of image data.

    Attributes:
        frame_reference: Path or identifier of the image data.
        timestamp: RFC3339 time the frame was published.
    """
    frame_reference: str
    timestamp: str = ""

    @classmethod
    def create(cls, frame_reference: str) -> "FrameRecord":
        """Create a record stamped with the current time."""
        return cls(frame_reference=frame_reference, timestamp=rfc3339_now())

    @classmethod
    def from_fields(cls, fields: Dict[str, Any]) -> "FrameRecord":
        """
        Adapter: Parse a stream field map.

        Raises:
            InvalidRecordError: If frame_reference is missing or not a non-empty string.
        """
        fields = _decode_fields(fields)
        frame_reference = fields.get(FRAME_REFERENCE_FIELD)
        if not isinstance(frame_reference, str) or not frame_reference:
            raise InvalidRecordError(
                f"{FRAME_REFERENCE_FIELD} not found or invalid in fields {sorted(fields)}"
            )
        timestamp = fields.get(TIMESTAMP_FIELD, "")
        if not isinstance(timestamp, str):
            timestamp = str(timestamp)
        return cls(frame_reference=frame_reference, timestamp=timestamp)

    def to_fields(self) -> Dict[str, str]:
        """Field map for XADD. All values are strings."""
        return {
            FRAME_REFERENCE_FIELD: self.frame_reference,
            TIMESTAMP_FIELD: self.timestamp,
        }


@dataclass(frozen=True)
class StreamMessage:
    """
    A message as delivered by a consumer group read.

    The log owns the message; a consumer only holds it until it is
    acknowledged or left pending.
    """
    id: str
    fields: Dict[str, Any] = field(default_factory=dict)
    stream: Optional[str] = None
    deliveries: int = 1

    @classmethod
    def from_entry(cls, entry, stream: Optional[str] = None, deliveries: int = 1) -> "StreamMessage":
        """Adapter: Convert a redis-py (id, fields) entry."""
        msg_id, fields = entry
        if isinstance(msg_id, bytes):
            msg_id = msg_id.decode()
        return cls(id=msg_id, fields=_decode_fields(fields or {}), stream=stream, deliveries=deliveries)

    def record(self) -> FrameRecord:
        return FrameRecord.from_fields(self.fields)


def _decode_fields(fields: Dict[Any, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in fields.items():
        if isinstance(k, bytes):
            k = k.decode()
        if isinstance(v, bytes):
            v = v.decode()
        out[k] = v
    return out
