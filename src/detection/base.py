"""
Detection interfaces.

A detector maps one image to a list of pixel-space detections. The pipeline
only depends on this interface.
"""

from __future__ import annotations

from typing import List

import numpy as np

from models.detection import Detection


class Detector:
    """Detector interface returning detections in pixel-space."""

    def detect(self, frame: np.ndarray) -> List[Detection]:
        raise NotImplementedError

    def detect_file(self, path: str) -> List[Detection]:
        raise NotImplementedError
