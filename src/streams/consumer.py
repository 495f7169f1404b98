"""
Stream consumer: reads a consumer group, runs a handler, acknowledges.

Delivery is at-least-once. A message is acknowledged only after the handler
returns, or when its record can never be processed (it is then copied to the
dead-letter stream first). Any other handler failure leaves the message in
the group's pending entries list, where a consumer reclaims it once it has
been idle for claim_min_idle_ms. A reclaimed message that has already been
delivered max_deliveries times is dead-lettered and acknowledged instead of
being handled again.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional

from redis.exceptions import RedisError, ResponseError

from models.config import RetryConfig, StreamConfig
from models.errors import ConsumerFatalError, GroupCreateError, InvalidRecordError
from models.frame import FrameRecord, StreamMessage
from models.stats import PipelineStats
from .backoff import backoff_delay

Handler = Callable[[str, FrameRecord], None]

ACKED = "acked"
FAILED = "failed"
DEAD_LETTERED = "dead_lettered"
ACK_FAILED = "ack_failed"


def ensure_group(client: Any, stream: str, group: str, start_id: str = "$") -> bool:
    """
    Create the consumer group (and the stream if missing).

    Returns:
        True if the group was created, False if it already existed.

    Raises:
        GroupCreateError: For any error other than BUSYGROUP.
    """
    try:
        client.xgroup_create(stream, group, id=start_id, mkstream=True)
    except ResponseError as e:
        if "BUSYGROUP" in str(e):
            return False
        raise GroupCreateError(f"Failed to create consumer group {group} on {stream}: {e}") from e
    except RedisError as e:
        raise GroupCreateError(f"Failed to create consumer group {group} on {stream}: {e}") from e
    return True


def parse_read_response(response: Any) -> List[StreamMessage]:
    """Adapter: Flatten an XREADGROUP reply (RESP2 list or RESP3 dict)."""
    if not response:
        return []
    if isinstance(response, dict):
        items: Iterable = response.items()
    else:
        items = response

    out: List[StreamMessage] = []
    for stream_name, entries in items:
        if isinstance(stream_name, bytes):
            stream_name = stream_name.decode()
        # RESP3 wraps the entries of each stream in an extra list
        if entries and isinstance(entries[0], list):
            entries = entries[0]
        for entry in entries:
            if not entry or entry[1] is None:
                continue
            out.append(StreamMessage.from_entry(entry, stream=stream_name))
    return out


class StreamConsumer:
    """
    One named member of a consumer group.

    Example:
        consumer = StreamConsumer(client, stream_cfg, "consumer-1")
        consumer.ensure_group()
        consumer.process(handler, stop_event)
    """

    def __init__(
        self,
        client: Any,
        stream_cfg: StreamConfig,
        consumer_name: str,
        retry_cfg: Optional[RetryConfig] = None,
        stats: Optional[PipelineStats] = None,
    ):
        self.client = client
        self.cfg = stream_cfg
        self.consumer_name = consumer_name
        self.retry = retry_cfg or RetryConfig()
        self.stats = stats or PipelineStats()
        self._next_reclaim = time.monotonic()

    @property
    def stream(self) -> str:
        return self.cfg.name

    @property
    def group(self) -> str:
        return self.cfg.group

    def ensure_group(self) -> bool:
        return ensure_group(self.client, self.stream, self.group)

    def read_batch(self) -> List[StreamMessage]:
        """
        Read up to read_count new messages for this consumer.

        Blocks for block_ms (0 blocks until a message arrives). Returns an
        empty list on timeout. RedisError propagates.
        """
        response = self.client.xreadgroup(
            self.group,
            self.consumer_name,
            {self.stream: ">"},
            count=self.cfg.read_count,
            block=self.cfg.block_ms,
        )
        return parse_read_response(response)

    def reclaim(self) -> List[StreamMessage]:
        """
        Take ownership of entries other consumers left pending too long.

        Returns the claimed messages; failures are logged and yield nothing.
        """
        try:
            claimed = self.client.xautoclaim(
                self.stream,
                self.group,
                self.consumer_name,
                min_idle_time=self.cfg.claim_min_idle_ms,
                start_id="0-0",
                count=self.cfg.read_count,
            )
        except RedisError as e:
            logging.warning(f"Pending recovery for {self.stream} failed (non-fatal): {e}")
            return []

        entries = claimed[1] if isinstance(claimed, (list, tuple)) and len(claimed) > 1 else []
        messages = [
            StreamMessage.from_entry(entry, stream=self.stream)
            for entry in entries
            if entry and entry[1] is not None
        ]
        if messages and self.cfg.max_deliveries > 0:
            counts = self._delivery_counts(messages)
            messages = [replace(m, deliveries=counts.get(m.id, m.deliveries)) for m in messages]
        if messages:
            logging.info(
                f"Consumer {self.consumer_name} reclaimed {len(messages)} pending messages from {self.stream}"
            )
        return messages

    def _delivery_counts(self, messages: List[StreamMessage]) -> Dict[str, int]:
        """Delivery count of each message from the pending entries list."""
        counts: Dict[str, int] = {}
        for message in messages:
            try:
                entries = self.client.xpending_range(
                    self.stream,
                    self.group,
                    min=message.id,
                    max=message.id,
                    count=1,
                    consumername=self.consumer_name,
                )
            except RedisError as e:
                logging.warning(f"Could not read delivery count of {message.id}: {e}")
                continue
            for entry in entries or []:
                msg_id = entry.get("message_id")
                if isinstance(msg_id, bytes):
                    msg_id = msg_id.decode()
                counts[msg_id] = int(entry.get("times_delivered", 1))
        return counts

    def _reclaim_due(self) -> bool:
        if self.cfg.reclaim_interval <= 0:
            return False
        now = time.monotonic()
        if now < self._next_reclaim:
            return False
        self._next_reclaim = now + self.cfg.reclaim_interval
        return True

    def ack(self, msg_id: str) -> bool:
        try:
            self.client.xack(self.stream, self.group, msg_id)
        except RedisError as e:
            logging.error(f"Failed to acknowledge message {msg_id}: {e}")
            return False
        self.stats.incr("acked")
        return True

    def dead_letter(self, message: StreamMessage, error: Any) -> bool:
        """Copy an unprocessable message to the dead-letter stream."""
        if not self.cfg.dead_letter_stream:
            return True
        fields = {str(k): str(v) for k, v in message.fields.items()}
        fields.update({
            "original_id": message.id,
            "stream": self.stream,
            "error": str(error),
        })
        try:
            self.client.xadd(self.cfg.dead_letter_stream, fields)
        except RedisError as e:
            logging.error(f"Failed to dead-letter message {message.id}: {e}")
            return False
        return True

    def handle(self, message: StreamMessage, handler: Handler) -> str:
        """
        Run the handler for one message and settle it.

        Returns one of ACKED, DEAD_LETTERED, FAILED, ACK_FAILED.
        """
        self.stats.incr("processed")
        limit = self.cfg.max_deliveries
        if limit > 0 and message.deliveries > limit:
            logging.warning(
                f"Consumer {self.consumer_name} giving up on message {message.id} "
                f"after {message.deliveries - 1} failed deliveries"
            )
            return self._drop(message, f"exceeded {limit} deliveries")

        try:
            handler(message.id, message.record())
        except InvalidRecordError as e:
            logging.warning(f"Consumer {self.consumer_name} dropping invalid message {message.id}: {e}")
            return self._drop(message, e)
        except Exception as e:
            logging.error(f"Error processing message {message.id}: {e}")
            self.stats.incr("failed")
            return FAILED

        return ACKED if self.ack(message.id) else ACK_FAILED

    def _drop(self, message: StreamMessage, error: Any) -> str:
        """Dead-letter then acknowledge; the message stays pending if the copy fails."""
        if not self.dead_letter(message, error):
            self.stats.incr("failed")
            return FAILED
        self.stats.incr("dead_lettered")
        return DEAD_LETTERED if self.ack(message.id) else ACK_FAILED

    def process(self, handler: Handler, stop_event: Optional[threading.Event] = None) -> None:
        """
        Consume until stop_event is set.

        Read failures are retried with exponential backoff; after
        retry.max_retries consecutive failures ConsumerFatalError is raised.
        The stop event is checked between reads and interrupts backoff waits.
        """
        stop_event = stop_event or threading.Event()
        failures = 0
        logging.info(f"Consumer {self.consumer_name} reading {self.stream} as group {self.group}")

        while not stop_event.is_set():
            messages: List[StreamMessage] = self.reclaim() if self._reclaim_due() else []
            if not messages:
                try:
                    messages = self.read_batch()
                except RedisError as e:
                    failures += 1
                    self.stats.incr("read_errors")
                    if failures > self.retry.max_retries:
                        raise ConsumerFatalError(
                            f"Consumer {self.consumer_name} gave up after {failures} failed reads: {e}"
                        ) from e
                    delay = backoff_delay(failures - 1, self.retry)
                    logging.warning(
                        f"Error reading messages from stream {self.stream} "
                        f"({failures}/{self.retry.max_retries}), retrying in {delay:.2f}s: {e}"
                    )
                    stop_event.wait(delay)
                    continue
                failures = 0

            for message in messages:
                self.handle(message, handler)

        logging.info(f"Consumer {self.consumer_name} stopped")

    def close(self) -> None:
        try:
            self.client.close()
        except RedisError as e:
            logging.warning(f"Error closing consumer client: {e}")
