"""
YOLO detector: preprocessing, model run, decoding and NMS for one frame.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from inference.backend import ModelRunner
from inference.preprocess import image_size, load_image, prepare_input
from models.config import DetectionConfig
from models.detection import Detection
from .base import Detector
from .decoder import DEFAULT_PROB_THRESHOLD, decode_output
from .nms import DEFAULT_IOU_THRESHOLD, filter_boxes


@dataclass(frozen=True)
class YoloDetectorConfig:
    prob_threshold: float = DEFAULT_PROB_THRESHOLD
    iou_threshold: float = DEFAULT_IOU_THRESHOLD
    class_names: Optional[Sequence[str]] = None

    @classmethod
    def from_detection_config(cls, cfg: DetectionConfig) -> "YoloDetectorConfig":
        return cls(prob_threshold=cfg.prob_threshold, iou_threshold=cfg.iou_threshold)


class YoloDetector(Detector):
    """
    Runs a shared model runner over images and reduces the raw output.

    The runner serializes its own calls, so one YoloDetector can be used from
    every consumer thread.
    """

    def __init__(self, runner: ModelRunner, cfg: Optional[YoloDetectorConfig] = None):
        self.runner = runner
        self.cfg = cfg or YoloDetectorConfig()

    def detect(self, frame: np.ndarray) -> List[Detection]:
        width, height = image_size(frame)
        output = self.runner.run(prepare_input(frame))
        candidates = decode_output(
            output,
            width,
            height,
            prob_threshold=self.cfg.prob_threshold,
            class_names=self.cfg.class_names,
        )
        detections = filter_boxes(candidates, iou_threshold=self.cfg.iou_threshold)
        logging.debug(f"Decoded {len(candidates)} candidates, kept {len(detections)}")
        return detections

    def detect_file(self, path: str) -> List[Detection]:
        """
        Load an image from disk and detect objects in it.

        Raises:
            ImageLoadError: If the image cannot be read.
            ModelShapeError: If the model returns an unexpected tensor.
        """
        return self.detect(load_image(path))
