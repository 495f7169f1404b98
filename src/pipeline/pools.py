"""
Bounded worker pools.

Each worker runs on its own thread and must take a slot from the pool's
counting semaphore before doing any work. The slot is released when the
worker returns or raises, so at most `capacity` workers of one pool are ever
active at the same time.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, List, Optional


class WorkerPool:
    """
    A named set of worker threads admitted through a BoundedSemaphore.

    Example:
        pool = WorkerPool("publisher", capacity=4)
        for i in range(4):
            pool.submit(run_publisher, f"publisher-{i + 1}")
        pool.join()
    """

    def __init__(self, name: str, capacity: int):
        if capacity <= 0:
            raise ValueError(f"{name} pool capacity must be positive, got {capacity}")
        self.name = name
        self.capacity = capacity
        self._semaphore = threading.BoundedSemaphore(capacity)
        self._lock = threading.Lock()
        self._threads: List[threading.Thread] = []
        self._active = 0
        self._peak_active = 0
        self._errors: List[BaseException] = []

    @property
    def active(self) -> int:
        with self._lock:
            return self._active

    @property
    def peak_active(self) -> int:
        """Highest number of simultaneously active workers seen so far."""
        with self._lock:
            return self._peak_active

    @property
    def errors(self) -> List[BaseException]:
        with self._lock:
            return list(self._errors)

    @property
    def alive(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def __len__(self) -> int:
        return len(self._threads)

    def submit(self, target: Callable[..., Any], *args: Any, name: Optional[str] = None) -> threading.Thread:
        thread = threading.Thread(
            target=self._run,
            args=(target, args),
            name=name or f"{self.name}-{len(self._threads) + 1}",
            daemon=True,
        )
        self._threads.append(thread)
        thread.start()
        return thread

    def _run(self, target: Callable[..., Any], args: tuple) -> None:
        self._semaphore.acquire()
        try:
            with self._lock:
                self._active += 1
                self._peak_active = max(self._peak_active, self._active)
            try:
                target(*args)
            finally:
                with self._lock:
                    self._active -= 1
        except Exception as e:
            logging.error(f"{self.name} worker {threading.current_thread().name} failed: {e}", exc_info=True)
            with self._lock:
                self._errors.append(e)
        finally:
            self._semaphore.release()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for every submitted worker.

        Returns:
            True if all workers finished, False if the timeout expired first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in list(self._threads):
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            thread.join(remaining)
            if thread.is_alive():
                return False
        return True
