"""
Frame stream detector.

Publishes frame references to a Redis stream, consumes them through a
consumer group and runs YOLO object detection on every referenced frame.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --publishers: Override pool.num_publishers
    --consumers: Override pool.num_consumers
    --frames-per-publisher: Override pool.frames_per_publisher
    --frame-reference: Override pool.frame_reference
    --no-publish: Only run consumers
"""

import os
import sys
import argparse
import logging
import signal
import yaml
from typing import Dict, Any, Tuple, Optional

from detection.detector import YoloDetector, YoloDetectorConfig
from inference.onnx_backend import OnnxModelRunner, OnnxRunnerConfig
from models.config import Config
from models.errors import GroupCreateError, ModelLoadError
from ops.logging import setup_logging
from pipeline.orchestrator import PipelineOrchestrator

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['stream', 'model', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Redis connection
    redis_cfg = config.get('redis', {}) or {}
    if 'host' in redis_cfg and not isinstance(redis_cfg['host'], str):
        return False, "redis.host must be a string"
    if 'port' in redis_cfg and not _is_positive_int(redis_cfg['port']):
        return False, "redis.port must be a positive integer"

    # Stream and consumer group
    stream = config.get('stream', {}) or {}
    for key in ('name', 'group'):
        if not isinstance(stream.get(key), str) or not stream.get(key):
            return False, f"stream.{key} is required and must be a non-empty string"
    if 'read_count' in stream and not _is_positive_int(stream['read_count']):
        return False, "stream.read_count must be a positive integer"
    if 'block_ms' in stream:
        if not isinstance(stream['block_ms'], int) or stream['block_ms'] < 0:
            return False, "stream.block_ms must be a non-negative integer"
    if 'max_deliveries' in stream and not (isinstance(stream['max_deliveries'], int) and stream['max_deliveries'] >= 0):
        return False, "stream.max_deliveries must be a non-negative integer"
    if stream.get('maxlen') is not None and not _is_positive_int(stream['maxlen']):
        return False, "stream.maxlen must be a positive integer"

    # Model
    model = config.get('model', {}) or {}
    if not isinstance(model.get('path'), str) or not model.get('path'):
        return False, "model.path is required"

    # Detection thresholds
    detection = config.get('detection', {}) or {}
    for key in ('prob_threshold', 'iou_threshold'):
        if key in detection:
            value = detection[key]
            if not _is_number(value) or not (0 <= value <= 1):
                return False, f"detection.{key} must be between 0 and 1"

    # Worker pools
    pool = config.get('pool', {}) or {}
    for key in ('num_publishers', 'num_consumers'):
        if key in pool and not (isinstance(pool[key], int) and pool[key] >= 0):
            return False, f"pool.{key} must be a non-negative integer"
    for key in ('publisher_capacity', 'consumer_capacity'):
        if pool.get(key) is not None and not _is_positive_int(pool[key]):
            return False, f"pool.{key} must be a positive integer"
    if 'frames_per_publisher' in pool and not (isinstance(pool['frames_per_publisher'], int) and pool['frames_per_publisher'] >= 0):
        return False, "pool.frames_per_publisher must be a non-negative integer"
    if 'publish_interval' in pool and not (_is_number(pool['publish_interval']) and pool['publish_interval'] >= 0):
        return False, "pool.publish_interval must be a non-negative number"

    # Read retry policy
    retry = config.get('retry', {}) or {}
    if 'max_retries' in retry and not (isinstance(retry['max_retries'], int) and retry['max_retries'] >= 0):
        return False, "retry.max_retries must be a non-negative integer"
    if 'jitter' in retry and not (_is_number(retry['jitter']) and 0 <= retry['jitter'] <= 1):
        return False, "retry.jitter must be between 0 and 1"

    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def apply_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Apply command-line overrides to the pool section."""
    pool = config.setdefault('pool', {})
    if args.publishers is not None:
        pool['num_publishers'] = args.publishers
    if args.consumers is not None:
        pool['num_consumers'] = args.consumers
    if args.frames_per_publisher is not None:
        pool['frames_per_publisher'] = args.frames_per_publisher
    if args.frame_reference is not None:
        pool['frame_reference'] = args.frame_reference
    return config


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Frame Stream Detector')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--publishers', type=int, default=None,
                        help='Number of publisher workers')
    parser.add_argument('--consumers', type=int, default=None,
                        help='Number of consumer workers')
    parser.add_argument('--frames-per-publisher', type=int, default=None,
                        help='Frames each publisher sends before exiting')
    parser.add_argument('--frame-reference', type=str, default=None,
                        help='Image path published in every frame record')
    parser.add_argument('--no-publish', action='store_true',
                        help='Only run consumers')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main application function."""
    args = parse_args(argv)

    config = apply_overrides(load_config(args.config), args)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        return 1

    setup_logging(config['log_path'], config['log_level'])
    cfg = Config.from_dict(config)

    logging.info("Starting Frame Stream Detector")

    try:
        runner = OnnxModelRunner(OnnxRunnerConfig.from_model_config(cfg.model))
    except ModelLoadError as e:
        logging.error(f"Failed to initialize session: {e}")
        return 1

    try:
        detector = YoloDetector(runner, YoloDetectorConfig.from_detection_config(cfg.detection))
        orchestrator = PipelineOrchestrator(cfg, detector)

        try:
            orchestrator.ensure_group()
        except GroupCreateError as e:
            logging.error(f"Failed to create consumer group: {e}")
            return 1

        def _handle_signal(signum, frame):
            logging.info(f"Received signal {signum}, stopping pipeline")
            orchestrator.stop()

        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)

        summary = orchestrator.run(publish=not args.no_publish)
        if summary.fatal_error:
            logging.error(f"Pipeline stopped on fatal error: {summary.fatal_error}")
            return 1
        return 0
    finally:
        runner.close()
        logging.info("Frame Stream Detector stopped")


if __name__ == "__main__":
    sys.exit(main())
