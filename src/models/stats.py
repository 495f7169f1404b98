"""
Runtime counters shared by publisher and consumer workers.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict


COUNTERS = (
    "published",
    "publish_failed",
    "processed",
    "acked",
    "failed",
    "dead_lettered",
    "detections",
    "read_errors",
)


@dataclass
class PipelineStats:
    """
    Thread-safe pipeline counters.

    Attributes:
        published: Records appended to the stream.
        publish_failed: Appends that raised.
        processed: Messages handed to the handler.
        acked: Messages acknowledged.
        failed: Handler failures left pending for redelivery.
        dead_lettered: Invalid records moved to the dead-letter stream.
        detections: Detections reported across all frames.
        read_errors: Failed group reads.
        start_time: Unix time the counters were created.
    """
    published: int = 0
    publish_failed: int = 0
    processed: int = 0
    acked: int = 0
    failed: int = 0
    dead_lettered: int = 0
    detections: int = 0
    read_errors: int = 0
    start_time: float = field(default_factory=time.time)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def incr(self, name: str, amount: int = 1) -> None:
        if name not in COUNTERS:
            raise AttributeError(f"Unknown counter: {name}")
        with self._lock:
            setattr(self, name, getattr(self, name) + amount)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            d: Dict[str, Any] = {name: getattr(self, name) for name in COUNTERS}
        d["uptime_seconds"] = round(time.time() - self.start_time, 1)
        return d
