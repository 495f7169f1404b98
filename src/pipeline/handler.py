"""
Detection handler invoked by stream consumers for every frame record.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from detection.base import Detector
from models.detection import Detection
from models.frame import FrameRecord
from models.stats import PipelineStats

ResultSink = Callable[[str, FrameRecord, List[Detection]], None]


class DetectionHandler:
    """
    Runs the detector on the frame a record references and reports the boxes.

    Errors from image loading or the model propagate to the consumer, which
    then leaves the message pending instead of acknowledging it.
    """

    def __init__(
        self,
        detector: Detector,
        consumer_name: str = "consumer",
        stats: Optional[PipelineStats] = None,
        sink: Optional[ResultSink] = None,
    ):
        self.detector = detector
        self.consumer_name = consumer_name
        self.stats = stats
        self.sink = sink

    def __call__(self, message_id: str, record: FrameRecord) -> List[Detection]:
        detections = self.detector.detect_file(record.frame_reference)

        for det in detections:
            logging.info(f"[{self.consumer_name}] {det}")
        if self.stats is not None:
            self.stats.incr("detections", len(detections))
        if self.sink is not None:
            self.sink(message_id, record, detections)

        logging.info(
            f"Consumer {self.consumer_name} processed frame {record.frame_reference} "
            f"from message {message_id}: {len(detections)} detections"
        )
        return detections
