"""
Pipeline orchestrator.

Starts a pool of publisher workers that append frame records to the stream
and a pool of consumer workers that read them through the consumer group and
run detection, then waits for all of them.

Publishers are finite: each sends frames_per_publisher records and exits.
Consumers run until stop() is called or one of them hits a fatal read error,
which stops the whole pipeline.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from detection.base import Detector
from models.config import Config
from models.errors import ConsumerFatalError, PublishError
from models.frame import FrameRecord
from models.stats import PipelineStats
from streams.client import create_redis_client
from streams.consumer import StreamConsumer, ensure_group
from streams.publisher import StreamPublisher
from .handler import DetectionHandler, ResultSink
from .pools import WorkerPool

ClientFactory = Callable[[], Any]


@dataclass
class RunSummary:
    """Outcome of one orchestrator run."""
    stats: Dict[str, Any]
    publisher_peak: int
    consumer_peak: int
    fatal_error: Optional[str] = None


class PipelineOrchestrator:
    """
    Wires worker pools, the stream and the detection handler.

    Example:
        orchestrator = PipelineOrchestrator(config, detector)
        orchestrator.ensure_group()
        orchestrator.run()
    """

    def __init__(
        self,
        config: Config,
        detector: Detector,
        client_factory: Optional[ClientFactory] = None,
        stats: Optional[PipelineStats] = None,
        sink: Optional[ResultSink] = None,
        poll_interval: float = 0.2,
    ):
        self.config = config
        self.detector = detector
        self.client_factory = client_factory or (lambda: create_redis_client(config.redis))
        self.stats = stats or PipelineStats()
        self.sink = sink
        self.poll_interval = poll_interval
        self.stop_event = threading.Event()
        self.publisher_pool = WorkerPool("publisher", config.pool.effective_publisher_capacity)
        self.consumer_pool = WorkerPool("consumer", config.pool.effective_consumer_capacity)
        self.fatal_error: Optional[BaseException] = None

    def ensure_group(self) -> None:
        """
        Create the consumer group before any worker starts.

        Raises:
            GroupCreateError: If the group cannot be created.
        """
        client = self.client_factory()
        try:
            created = ensure_group(client, self.config.stream.name, self.config.stream.group)
        finally:
            client.close()
        if created:
            logging.info(f"Consumer group {self.config.stream.group} created on {self.config.stream.name}")
        else:
            logging.info(f"Consumer group {self.config.stream.group} already exists")

    def run_publisher(self, name: str) -> None:
        pool_cfg = self.config.pool
        publisher = StreamPublisher(
            self.client_factory(),
            self.config.stream.name,
            maxlen=self.config.stream.maxlen,
        )
        logging.info(f"Publisher {name} starting...")
        try:
            for i in range(pool_cfg.frames_per_publisher):
                if self.stop_event.is_set():
                    break
                try:
                    publisher.publish(FrameRecord.create(pool_cfg.frame_reference))
                    self.stats.incr("published")
                except PublishError as e:
                    logging.error(f"Publisher {name} failed to publish frame {i}: {e}")
                    self.stats.incr("publish_failed")
                self.stop_event.wait(pool_cfg.publish_interval)
        finally:
            publisher.close()
        logging.info(f"Publisher {name} finished.")

    def run_consumer(self, name: str) -> None:
        consumer = StreamConsumer(
            self.client_factory(),
            self.config.stream,
            name,
            retry_cfg=self.config.retry,
            stats=self.stats,
        )
        handler = DetectionHandler(self.detector, consumer_name=name, stats=self.stats, sink=self.sink)
        try:
            consumer.process(handler, self.stop_event)
        except ConsumerFatalError as e:
            logging.error(f"Consumer {name} stopped: {e}; shutting down pipeline")
            self.fatal_error = e
            self.stop()
        finally:
            consumer.close()

    def start(self, publish: bool = True) -> None:
        pool_cfg = self.config.pool
        if publish:
            for i in range(pool_cfg.num_publishers):
                name = f"publisher-{i + 1}"
                self.publisher_pool.submit(self.run_publisher, name, name=name)
        for i in range(pool_cfg.num_consumers):
            name = f"consumer-{i + 1}"
            self.consumer_pool.submit(self.run_consumer, name, name=name)
        logging.info(
            f"Pipeline started: publishers={len(self.publisher_pool)} "
            f"consumers={len(self.consumer_pool)} stream={self.config.stream.name}"
        )

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every worker has exited, logging stats periodically.

        Returns:
            True if all workers finished, False on timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        interval = self.config.pool.stats_log_interval
        next_log = time.monotonic() + interval

        while self.publisher_pool.alive or self.consumer_pool.alive:
            if deadline is not None and time.monotonic() >= deadline:
                return False
            self.publisher_pool.join(timeout=self.poll_interval)
            self.consumer_pool.join(timeout=self.poll_interval)
            if interval > 0 and time.monotonic() >= next_log:
                logging.info(f"Pipeline stats: {self.stats.snapshot()}")
                next_log = time.monotonic() + interval
        return True

    def stop(self) -> None:
        """Signal every worker to stop after its current read or send."""
        self.stop_event.set()

    def run(self, publish: bool = True, timeout: Optional[float] = None) -> RunSummary:
        self.start(publish=publish)
        try:
            finished = self.wait(timeout=timeout)
        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
            finished = False
        if not finished:
            self.stop()
            self.wait(timeout=5.0)
        summary = RunSummary(
            stats=self.stats.snapshot(),
            publisher_peak=self.publisher_pool.peak_active,
            consumer_peak=self.consumer_pool.peak_active,
            fatal_error=str(self.fatal_error) if self.fatal_error else None,
        )
        logging.info(f"Pipeline stopped: {summary.stats}")
        return summary
