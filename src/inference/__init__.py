"""
Inference layer: model runner boundary and input preprocessing.
"""

from .backend import ModelRunner, INPUT_SHAPE, OUTPUT_SHAPE
from .onnx_backend import OnnxModelRunner, OnnxRunnerConfig
from .preprocess import load_image, prepare_input

__all__ = [
    "ModelRunner",
    "INPUT_SHAPE",
    "OUTPUT_SHAPE",
    "OnnxModelRunner",
    "OnnxRunnerConfig",
    "load_image",
    "prepare_input",
]
