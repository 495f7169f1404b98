"""
Detection: output decoding, non-max suppression and the YOLO detector.
"""

from .base import Detector
from .decoder import decode_output
from .nms import filter_boxes
from .detector import YoloDetector, YoloDetectorConfig

__all__ = ['Detector', 'decode_output', 'filter_boxes', 'YoloDetector', 'YoloDetectorConfig']
