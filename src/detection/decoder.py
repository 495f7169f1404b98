"""
YOLOv8 output decoding.

The model emits a (84, 8400) grid: rows 0-3 hold the normalized box center
and size (xc, yc, w, h) for each of the 8400 predictions, rows 4-83 hold the
80 class scores. Each prediction becomes at most one candidate Detection.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from inference.backend import NUM_BOX_VALUES, NUM_CLASSES, NUM_PREDICTIONS
from models.detection import Detection
from models.errors import ModelShapeError
from .labels import COCO_CLASSES

DEFAULT_PROB_THRESHOLD = 0.5


def decode_output(
    output: np.ndarray,
    image_width: int,
    image_height: int,
    prob_threshold: float = DEFAULT_PROB_THRESHOLD,
    class_names: Optional[Sequence[str]] = None,
) -> List[Detection]:
    """
    Turn a raw output tensor into candidate detections.

    For every prediction the best class is the first maximum over the class
    scores, so ties go to the lowest class index. Predictions whose best score
    is below prob_threshold are dropped; a score equal to the threshold is kept.
    NaN class scores are ignored, and cells whose best score or box values are
    not finite are dropped. Corners are scaled to pixel space and truncated toward zero.

    Args:
        output: Tensor of shape (1, 84, 8400), (84, 8400) or the flat equivalent.
        image_width: Width of the source image in pixels.
        image_height: Height of the source image in pixels.
        prob_threshold: Minimum class score to keep a prediction.
        class_names: Labels indexed by class id (defaults to COCO).

    Returns:
        Candidates in prediction index order.
    """
    names = list(class_names) if class_names is not None else COCO_CLASSES
    rows = NUM_BOX_VALUES + NUM_CLASSES
    grid = np.asarray(output, dtype=np.float32)
    if grid.size != rows * NUM_PREDICTIONS:
        raise ModelShapeError(
            f"output tensor has {grid.size} values, expected {rows * NUM_PREDICTIONS}"
        )
    grid = grid.reshape(rows, NUM_PREDICTIONS)

    # NaN scores never win a cell
    scores = grid[NUM_BOX_VALUES:]
    scores = np.where(np.isnan(scores), np.float32(-np.inf), scores)
    class_ids = np.argmax(scores, axis=0)
    probs = scores[class_ids, np.arange(NUM_PREDICTIONS)]
    valid = np.isfinite(probs) & np.isfinite(grid[:NUM_BOX_VALUES]).all(axis=0)
    keep = np.flatnonzero(valid & ~(probs < np.float32(prob_threshold)))
    if keep.size == 0:
        return []

    xc, yc, w, h = (grid[i, keep] for i in range(NUM_BOX_VALUES))
    half_w = w / np.float32(2)
    half_h = h / np.float32(2)
    img_w = np.float32(image_width)
    img_h = np.float32(image_height)

    x1 = ((xc - half_w) * img_w).astype(np.int64)
    y1 = ((yc - half_h) * img_h).astype(np.int64)
    x2 = ((xc + half_w) * img_w).astype(np.int64)
    y2 = ((yc + half_h) * img_h).astype(np.int64)

    out: List[Detection] = []
    for j, index in enumerate(keep):
        class_id = int(class_ids[index])
        out.append(
            Detection.from_xyxy(
                x1=float(x1[j]),
                y1=float(y1[j]),
                x2=float(x2[j]),
                y2=float(y2[j]),
                confidence=float(probs[index]),
                class_id=class_id,
                class_name=names[class_id] if class_id < len(names) else str(class_id),
            )
        )
    return out
