"""
ONNX Runtime model runner.

Wraps one InferenceSession for a YOLOv8-style detector with fixed
[1,3,640,640] input and [1,84,8400] output. The session is created once at
startup and reused by every consumer; calls to run() are serialized because
the session is not assumed to be thread-safe.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, List, Optional

import numpy as np

from models.config import ModelConfig
from models.errors import ModelLoadError
from .backend import INPUT_SHAPE, OUTPUT_SHAPE, ModelRunner, check_shape


@dataclass(frozen=True)
class OnnxRunnerConfig:
    model_path: str
    input_name: str = "images"
    output_name: str = "output0"
    providers: List[str] = field(default_factory=lambda: ["CPUExecutionProvider"])

    @classmethod
    def from_model_config(cls, cfg: ModelConfig) -> "OnnxRunnerConfig":
        return cls(
            model_path=cfg.path,
            input_name=cfg.input_name,
            output_name=cfg.output_name,
            providers=list(cfg.providers),
        )


class OnnxModelRunner(ModelRunner):
    def __init__(self, cfg: OnnxRunnerConfig, session: Optional[Any] = None):
        self.cfg = cfg
        self._lock = threading.Lock()
        self._session = session if session is not None else self._create_session(cfg)
        self._runs = 0
        logging.info(
            f"Model session ready: model={cfg.model_path} "
            f"input={cfg.input_name}{INPUT_SHAPE} output={cfg.output_name}{OUTPUT_SHAPE}"
        )

    @staticmethod
    def _create_session(cfg: OnnxRunnerConfig) -> Any:
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ModelLoadError(
                "onnxruntime is not installed. Install with `pip install onnxruntime`."
            ) from e

        try:
            return ort.InferenceSession(cfg.model_path, providers=cfg.providers)
        except Exception as e:
            raise ModelLoadError(f"Error creating ORT session for {cfg.model_path}: {e}") from e

    @property
    def run_count(self) -> int:
        return self._runs

    def run(self, input_tensor: np.ndarray) -> np.ndarray:
        """
        Run the model on one input tensor.

        Returns a copy of the output so callers never alias session buffers.

        Raises:
            ModelShapeError: If the input or output tensor shape is wrong.
            RuntimeError: If the runtime fails.
        """
        check_shape(input_tensor, INPUT_SHAPE, "input")
        feed = {self.cfg.input_name: np.ascontiguousarray(input_tensor, dtype=np.float32)}

        with self._lock:
            if self._session is None:
                raise RuntimeError("Model session has been closed")
            try:
                outputs = self._session.run([self.cfg.output_name], feed)
            except Exception as e:
                raise RuntimeError(f"error running model: {e}") from e
            self._runs += 1

        output = np.array(outputs[0], dtype=np.float32, copy=True)
        check_shape(output, OUTPUT_SHAPE, "output")
        return output

    def close(self) -> None:
        with self._lock:
            self._session = None
        logging.info(f"Model session closed after {self._runs} runs")
