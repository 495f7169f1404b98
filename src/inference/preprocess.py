"""
Frame preprocessing: image file to model input tensor.
"""

from __future__ import annotations

import os
from typing import Tuple

import cv2
import numpy as np

from models.errors import ImageLoadError
from .backend import INPUT_SIZE


def load_image(path: str) -> np.ndarray:
    """
    Read an image from disk as a BGR array.

    Raises:
        ImageLoadError: If the file is missing or cannot be decoded.
    """
    if not os.path.exists(path):
        raise ImageLoadError(f"error opening {path}: no such file")
    image = cv2.imread(path, cv2.IMREAD_COLOR)
    if image is None:
        raise ImageLoadError(f"error decoding {path}")
    return image


def image_size(image: np.ndarray) -> Tuple[int, int]:
    """Return (width, height)."""
    h, w = image.shape[:2]
    return w, h


def prepare_input(image: np.ndarray, size: int = INPUT_SIZE) -> np.ndarray:
    """
    Convert a BGR image into a normalized NCHW float32 tensor.

    The image is stretched (not letterboxed) to size x size with Lanczos
    resampling, channels are reordered to RGB, and values are scaled to [0, 1].
    """
    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    elif image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    resized = cv2.resize(rgb, (size, size), interpolation=cv2.INTER_LANCZOS4)
    chw = np.transpose(resized.astype(np.float32) / 255.0, (2, 0, 1))
    return chw[None, ...]
