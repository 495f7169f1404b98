"""
Typed models for the frame stream detector.

Records travelling on the stream, detections decoded from model output,
configuration, and the error hierarchy shared by every layer.
"""

from .frame import FrameRecord, StreamMessage
from .detection import Detection, BoundingBox
from .stats import PipelineStats
from .errors import (
    StreamError,
    PublishError,
    GroupCreateError,
    ConsumerFatalError,
    InvalidRecordError,
    InferenceError,
    ModelLoadError,
    ModelShapeError,
    ImageLoadError,
)
from .config import (
    Config,
    RedisConfig,
    StreamConfig,
    ModelConfig,
    DetectionConfig,
    PoolConfig,
    RetryConfig,
)

__all__ = [
    # Stream
    "FrameRecord",
    "StreamMessage",
    # Detection
    "Detection",
    "BoundingBox",
    # Stats
    "PipelineStats",
    # Errors
    "StreamError",
    "PublishError",
    "GroupCreateError",
    "ConsumerFatalError",
    "InvalidRecordError",
    "InferenceError",
    "ModelLoadError",
    "ModelShapeError",
    "ImageLoadError",
    # Config
    "Config",
    "RedisConfig",
    "StreamConfig",
    "ModelConfig",
    "DetectionConfig",
    "PoolConfig",
    "RetryConfig",
]
