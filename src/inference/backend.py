"""
Model runner interface.

A runner owns one inference session and maps a fixed-shape input tensor to a
fixed-shape output tensor. Runners are shared by every consumer thread.
"""

from __future__ import annotations

from typing import Protocol, Tuple

import numpy as np

from models.errors import ModelShapeError

INPUT_SIZE = 640
NUM_PREDICTIONS = 8400
NUM_CLASSES = 80
NUM_BOX_VALUES = 4

INPUT_SHAPE: Tuple[int, ...] = (1, 3, INPUT_SIZE, INPUT_SIZE)
OUTPUT_SHAPE: Tuple[int, ...] = (1, NUM_BOX_VALUES + NUM_CLASSES, NUM_PREDICTIONS)


class ModelRunner(Protocol):
    def run(self, input_tensor: np.ndarray) -> np.ndarray:
        ...

    def close(self) -> None:
        ...


def check_shape(tensor: np.ndarray, expected: Tuple[int, ...], name: str) -> None:
    """Raise ModelShapeError unless tensor has exactly the expected shape."""
    shape = tuple(getattr(tensor, "shape", ()))
    if shape != tuple(expected):
        raise ModelShapeError(f"{name} tensor has shape {shape}, expected {tuple(expected)}")
