"""
Greedy non-max suppression.

Candidates are visited in ascending confidence order and a candidate is kept
only if it does not overlap (IoU above the threshold) any box kept before it.
Because the lowest-confidence box of a cluster is visited first, it is the
one that survives.
"""

from __future__ import annotations

from typing import Iterable, List

from models.detection import Detection

DEFAULT_IOU_THRESHOLD = 0.7


def filter_boxes(candidates: Iterable[Detection], iou_threshold: float = DEFAULT_IOU_THRESHOLD) -> List[Detection]:
    """
    Remove overlapping duplicates.

    Args:
        candidates: Decoded candidates in any order.
        iou_threshold: Boxes with IoU strictly greater than this are duplicates.
            IoU and threshold are compared as Python floats (float64).

    Returns:
        Kept detections in ascending confidence order. Equal confidences keep
        their input order.
    """
    ordered = sorted(candidates, key=lambda d: d.confidence)
    kept: List[Detection] = []
    for candidate in ordered:
        if any(candidate.iou(existing) > iou_threshold for existing in kept):
            continue
        kept.append(candidate)
    return kept
