"""
Pytest configuration and shared fixtures.
"""

import os
import sys
import threading
import time
from collections import OrderedDict

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from detection.base import Detector  # noqa: E402
from models.detection import Detection  # noqa: E402


def _parse_id(msg_id):
    ms, seq = msg_id.split("-")
    return (int(ms), int(seq))


class FakeStreamStore:
    """
    In-memory stand-in for the Redis stream commands the pipeline uses.

    Shared by every FakeStreamClient so each worker can own its own handle.
    Set read_failures / xadd_failures to make the next N calls raise.
    """

    def __init__(self):
        self.cond = threading.Condition()
        self.streams = {}
        self.groups = {}
        self.next_seq = 1
        self.read_failures = 0
        self.xadd_failures = 0
        self.ack_calls = []

    def pending_count(self, stream, group):
        with self.cond:
            return len(self.groups[(stream, group)]["pending"])

    def entries(self, stream):
        with self.cond:
            return list(self.streams.get(stream, []))


class FakeStreamClient:
    def __init__(self, store):
        self.store = store
        self.closed = False

    def xadd(self, name, fields, id="*", maxlen=None, approximate=True):
        store = self.store
        with store.cond:
            if store.xadd_failures > 0:
                store.xadd_failures -= 1
                raise RedisConnectionError("Connection refused")
            msg_id = f"{store.next_seq}-0"
            store.next_seq += 1
            store.streams.setdefault(name, []).append((msg_id, dict(fields)))
            store.cond.notify_all()
            return msg_id

    def xgroup_create(self, name, groupname, id="$", mkstream=False):
        store = self.store
        with store.cond:
            if name not in store.streams:
                if not mkstream:
                    raise ResponseError("ERR The XGROUP subcommand requires the key to exist")
                store.streams[name] = []
            if (name, groupname) in store.groups:
                raise ResponseError("BUSYGROUP Consumer Group name already exists")
            if id == "$":
                entries = store.streams[name]
                last = _parse_id(entries[-1][0]) if entries else (0, 0)
            else:
                last = _parse_id(id)
            store.groups[(name, groupname)] = {"last": last, "pending": OrderedDict()}
            return True

    def _deliver(self, group, name, consumername, count):
        entries = [e for e in self.store.streams.get(name, []) if _parse_id(e[0]) > group["last"]]
        if count:
            entries = entries[:count]
        now = time.monotonic()
        for msg_id, _ in entries:
            group["last"] = _parse_id(msg_id)
            group["pending"][msg_id] = {"consumer": consumername, "delivered_at": now, "count": 1}
        return entries

    def xreadgroup(self, groupname, consumername, streams, count=None, block=None, noack=False):
        store = self.store
        deadline = None if not block else time.monotonic() + block / 1000.0
        with store.cond:
            if store.read_failures > 0:
                store.read_failures -= 1
                raise RedisConnectionError("Connection reset by peer")
            while True:
                out = []
                for name, start in streams.items():
                    group = store.groups.get((name, groupname))
                    if group is None:
                        raise ResponseError("NOGROUP No such key or consumer group")
                    entries = self._deliver(group, name, consumername, count)
                    if entries:
                        out.append([name, entries])
                if out or block is None:
                    return out
                if deadline is None:
                    store.cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return []
                store.cond.wait(remaining)

    def xack(self, name, groupname, *ids):
        store = self.store
        with store.cond:
            pending = store.groups[(name, groupname)]["pending"]
            removed = 0
            for msg_id in ids:
                store.ack_calls.append(msg_id)
                if pending.pop(msg_id, None) is not None:
                    removed += 1
            return removed

    def xautoclaim(self, name, groupname, consumername, min_idle_time, start_id="0-0", count=None, justid=False):
        store = self.store
        with store.cond:
            group = store.groups[(name, groupname)]
            by_id = dict(store.streams.get(name, []))
            now = time.monotonic()
            claimed = []
            for msg_id, info in group["pending"].items():
                if count and len(claimed) >= count:
                    break
                if (now - info["delivered_at"]) * 1000.0 < min_idle_time:
                    continue
                info["consumer"] = consumername
                info["delivered_at"] = now
                info["count"] += 1
                claimed.append((msg_id, by_id[msg_id]))
            return ["0-0", claimed, []]

    def xpending(self, name, groupname):
        with self.store.cond:
            pending = self.store.groups[(name, groupname)]["pending"]
            ids = list(pending)
            return {
                "pending": len(ids),
                "min": ids[0] if ids else None,
                "max": ids[-1] if ids else None,
                "consumers": [],
            }

    def xpending_range(self, name, groupname, min, max, count, consumername=None, idle=None):
        lo = (0, 0) if min == "-" else _parse_id(min)
        hi = None if max == "+" else _parse_id(max)
        now = time.monotonic()
        out = []
        with self.store.cond:
            for msg_id, info in self.store.groups[(name, groupname)]["pending"].items():
                key = _parse_id(msg_id)
                if key < lo or (hi is not None and key > hi):
                    continue
                if consumername is not None and info["consumer"] != consumername:
                    continue
                out.append({
                    "message_id": msg_id,
                    "consumer": info["consumer"],
                    "time_since_delivered": int((now - info["delivered_at"]) * 1000),
                    "times_delivered": info["count"],
                })
                if len(out) >= count:
                    break
        return out

    def close(self):
        self.closed = True


class FakeDetector(Detector):
    """Returns one fixed detection per frame; frames named in `failing` raise."""

    def __init__(self, failing=None, delay=0.0):
        self.failing = set(failing or [])
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def detect_file(self, path):
        with self._lock:
            self.calls.append(path)
        if self.delay:
            time.sleep(self.delay)
        if path in self.failing:
            raise RuntimeError(f"error running model on {path}")
        return [Detection.from_xyxy(10, 20, 110, 220, confidence=0.9, class_id=2, class_name="car")]


@pytest.fixture
def stream_store():
    return FakeStreamStore()


@pytest.fixture
def client_factory(stream_store):
    return lambda: FakeStreamClient(stream_store)


@pytest.fixture
def fake_detector():
    return FakeDetector()


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
redis:
  host: "localhost"
  port: 6379

stream:
  name: "camera_stream"
  group: "camera_group"
  block_ms: 2000

model:
  path: "models/yolov8m.onnx"

pool:
  num_publishers: 20
  num_consumers: 30

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "redis": {"host": "localhost", "port": 6379, "db": 0},
        "stream": {
            "name": "camera_stream",
            "group": "camera_group",
            "read_count": 10,
            "block_ms": 2000,
        },
        "model": {"path": "models/yolov8m.onnx"},
        "detection": {"prob_threshold": 0.5, "iou_threshold": 0.7},
        "pool": {
            "num_publishers": 20,
            "num_consumers": 30,
            "frames_per_publisher": 5,
            "publish_interval": 0.5,
        },
        "retry": {"max_retries": 10, "jitter": 0.5},
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
