"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class RedisConfig:
    """Redis connection settings. Each worker opens its own client from these."""
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RedisConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            host=d.get("host", "localhost"),
            port=d.get("port", 6379),
            db=d.get("db", 0),
            password=d.get("password"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "db": self.db,
        }
        if self.password is not None:
            d["password"] = self.password
        return d


@dataclass
class StreamConfig:
    """Stream and consumer group settings."""
    name: str = "camera_stream"
    group: str = "camera_group"
    dead_letter_stream: Optional[str] = "camera_stream:dead"
    maxlen: Optional[int] = None
    read_count: int = 10
    block_ms: int = 2000  # 0 blocks until a message arrives
    claim_min_idle_ms: int = 60000
    reclaim_interval: float = 30.0
    max_deliveries: int = 5  # 0 retries failed messages forever

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StreamConfig":
        return cls(
            name=d.get("name", "camera_stream"),
            group=d.get("group", "camera_group"),
            dead_letter_stream=d.get("dead_letter_stream", "camera_stream:dead"),
            maxlen=d.get("maxlen"),
            read_count=d.get("read_count", 10),
            block_ms=d.get("block_ms", 2000),
            claim_min_idle_ms=d.get("claim_min_idle_ms", 60000),
            reclaim_interval=d.get("reclaim_interval", 30.0),
            max_deliveries=d.get("max_deliveries", 5),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "group": self.group,
            "dead_letter_stream": self.dead_letter_stream,
            "read_count": self.read_count,
            "block_ms": self.block_ms,
            "claim_min_idle_ms": self.claim_min_idle_ms,
            "reclaim_interval": self.reclaim_interval,
            "max_deliveries": self.max_deliveries,
        }
        if self.maxlen is not None:
            d["maxlen"] = self.maxlen
        return d


@dataclass
class ModelConfig:
    """ONNX model session settings."""
    path: str = "models/yolov8m.onnx"
    input_name: str = "images"
    output_name: str = "output0"
    providers: List[str] = field(default_factory=lambda: ["CPUExecutionProvider"])

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        return cls(
            path=d.get("path", "models/yolov8m.onnx"),
            input_name=d.get("input_name", "images"),
            output_name=d.get("output_name", "output0"),
            providers=d.get("providers", ["CPUExecutionProvider"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "input_name": self.input_name,
            "output_name": self.output_name,
            "providers": self.providers,
        }


@dataclass
class DetectionConfig:
    """Output decoding thresholds."""
    prob_threshold: float = 0.5
    iou_threshold: float = 0.7

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            prob_threshold=d.get("prob_threshold", 0.5),
            iou_threshold=d.get("iou_threshold", 0.7),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prob_threshold": self.prob_threshold,
            "iou_threshold": self.iou_threshold,
        }


@dataclass
class PoolConfig:
    """Worker pool sizes and publisher pacing."""
    num_publishers: int = 20
    num_consumers: int = 30
    publisher_capacity: Optional[int] = None  # defaults to num_publishers
    consumer_capacity: Optional[int] = None  # defaults to num_consumers
    frames_per_publisher: int = 5
    publish_interval: float = 0.5
    frame_reference: str = "car.png"
    stats_log_interval: float = 60.0

    @property
    def effective_publisher_capacity(self) -> int:
        return self.publisher_capacity or max(self.num_publishers, 1)

    @property
    def effective_consumer_capacity(self) -> int:
        return self.consumer_capacity or max(self.num_consumers, 1)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PoolConfig":
        return cls(
            num_publishers=d.get("num_publishers", 20),
            num_consumers=d.get("num_consumers", 30),
            publisher_capacity=d.get("publisher_capacity"),
            consumer_capacity=d.get("consumer_capacity"),
            frames_per_publisher=d.get("frames_per_publisher", 5),
            publish_interval=d.get("publish_interval", 0.5),
            frame_reference=d.get("frame_reference", "car.png"),
            stats_log_interval=d.get("stats_log_interval", 60.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "num_publishers": self.num_publishers,
            "num_consumers": self.num_consumers,
            "frames_per_publisher": self.frames_per_publisher,
            "publish_interval": self.publish_interval,
            "frame_reference": self.frame_reference,
            "stats_log_interval": self.stats_log_interval,
        }
        if self.publisher_capacity is not None:
            d["publisher_capacity"] = self.publisher_capacity
        if self.consumer_capacity is not None:
            d["consumer_capacity"] = self.consumer_capacity
        return d


@dataclass
class RetryConfig:
    """Backoff for consumer read failures."""
    max_retries: int = 10
    base_delay: float = 0.1
    max_delay: float = 5.0
    jitter: float = 0.5

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RetryConfig":
        return cls(
            max_retries=d.get("max_retries", 10),
            base_delay=d.get("base_delay", 0.1),
            max_delay=d.get("max_delay", 5.0),
            jitter=d.get("jitter", 0.5),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_retries": self.max_retries,
            "base_delay": self.base_delay,
            "max_delay": self.max_delay,
            "jitter": self.jitter,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    redis: RedisConfig = field(default_factory=RedisConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    pool: PoolConfig = field(default_factory=PoolConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    log_path: str = "logs/frame_stream_detector.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            redis=RedisConfig.from_dict(d.get("redis", {}) or {}),
            stream=StreamConfig.from_dict(d.get("stream", {}) or {}),
            model=ModelConfig.from_dict(d.get("model", {}) or {}),
            detection=DetectionConfig.from_dict(d.get("detection", {}) or {}),
            pool=PoolConfig.from_dict(d.get("pool", {}) or {}),
            retry=RetryConfig.from_dict(d.get("retry", {}) or {}),
            log_path=d.get("log_path", "logs/frame_stream_detector.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "redis": self.redis.to_dict(),
            "stream": self.stream.to_dict(),
            "model": self.model.to_dict(),
            "detection": self.detection.to_dict(),
            "pool": self.pool.to_dict(),
            "retry": self.retry.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
