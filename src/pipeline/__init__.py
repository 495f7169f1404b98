"""
Pipeline module for the frame stream detector.

The pipeline orchestrates the full processing flow:
- Publisher workers append frame records to the stream
- Consumer workers read them through the consumer group
- The detection handler runs the model and reports boxes
"""

from .pools import WorkerPool
from .handler import DetectionHandler
from .orchestrator import PipelineOrchestrator, RunSummary

__all__ = [
    "WorkerPool",
    "DetectionHandler",
    "PipelineOrchestrator",
    "RunSummary",
]
