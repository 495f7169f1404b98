"""
Exception hierarchy for the stream and inference layers.
"""

from __future__ import annotations

from typing import Optional


class StreamError(Exception):
    """Base class for message log failures."""


class PublishError(StreamError):
    """Appending a record to the stream failed."""

    def __init__(self, stream: str, cause: Optional[BaseException] = None):
        self.stream = stream
        self.cause = cause
        super().__init__(f"Failed to publish to stream {stream}: {cause}")


class GroupCreateError(StreamError):
    """The consumer group could not be created (other than BUSYGROUP)."""


class ConsumerFatalError(StreamError):
    """A consumer gave up after too many consecutive read failures."""


class InvalidRecordError(StreamError):
    """
    A stream message does not carry a usable frame record.

    Retrying cannot fix the message, so consumers treat it as handled.
    """


class InferenceError(Exception):
    """Base class for model and image failures."""


class ModelLoadError(InferenceError):
    """The inference session could not be created."""


class ModelShapeError(InferenceError):
    """A tensor did not have the fixed shape the model expects."""


class ImageLoadError(InferenceError):
    """The image a frame reference points at could not be read."""
