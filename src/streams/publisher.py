"""
Stream publisher: appends frame records to the log.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from redis.exceptions import RedisError

from models.errors import PublishError
from models.frame import FrameRecord


class StreamPublisher:
    """
    Appends FrameRecords to one stream with XADD.

    Each publish is a single attempt. A failed append raises PublishError and
    the record is not retried.
    """

    def __init__(self, client: Any, stream: str, maxlen: Optional[int] = None):
        self.client = client
        self.stream = stream
        self.maxlen = maxlen

    def publish(self, record: FrameRecord) -> str:
        """
        Append a record.

        Returns:
            The message id the log assigned.

        Raises:
            PublishError: If the append fails.
        """
        try:
            msg_id = self.client.xadd(
                self.stream,
                record.to_fields(),
                maxlen=self.maxlen,
                approximate=True,
            )
        except RedisError as e:
            logging.error(f"Failed to publish to stream {self.stream}: {e}")
            raise PublishError(self.stream, e) from e
        if isinstance(msg_id, bytes):
            msg_id = msg_id.decode()
        return msg_id

    def close(self) -> None:
        try:
            self.client.close()
        except RedisError as e:
            logging.warning(f"Error closing publisher client: {e}")
