"""
Stream layer: Redis Streams publisher and consumer-group consumer.
"""

from .client import create_redis_client
from .publisher import StreamPublisher
from .consumer import StreamConsumer, ensure_group, parse_read_response
from .backoff import backoff_delay

__all__ = [
    "create_redis_client",
    "StreamPublisher",
    "StreamConsumer",
    "ensure_group",
    "parse_read_response",
    "backoff_delay",
]
