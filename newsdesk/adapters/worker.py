"""
Publish job worker.

Polls the scheduler for due jobs on a background thread. Several workers
(threads or processes) may share one database; the claim is the only
coordination between them.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol
from uuid import uuid4

from newsdesk.components.scheduler import ProcessResult

logger = logging.getLogger(__name__)


class DueJobProcessor(Protocol):
    def process_due(self, worker_id: str, max_jobs: int | None = None) -> ProcessResult: ...


class JobWorker:
    """
    Background poller for publish jobs.

    Each poll runs one process_due pass. Errors in a pass are logged and the
    loop carries on; jobs left in processing are requeued once their claim
    times out.
    """

    def __init__(
        self,
        processor: DueJobProcessor,
        poll_interval_seconds: float = 30.0,
        batch_size: int | None = None,
        worker_id: str | None = None,
    ) -> None:
        self._processor = processor
        self._poll_interval = poll_interval_seconds
        self._batch_size = batch_size
        self.worker_id = worker_id or f"worker-{uuid4().hex[:8]}"
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False

    def start(self) -> None:
        """Start the background worker."""
        if self._running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop, name=self.worker_id, daemon=True
        )
        self._thread.start()
        self._running = True
        logger.info(
            "Worker %s started (poll interval: %.1fs)", self.worker_id, self._poll_interval
        )

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the worker, waiting up to timeout for the current pass."""
        if not self._running:
            return

        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
        self._running = False
        logger.info("Worker %s stopped", self.worker_id)

    def run_forever(self) -> None:
        """Run the poll loop on the calling thread until stop() is called."""
        logger.info("Worker %s running (poll interval: %.1fs)", self.worker_id, self._poll_interval)
        self._running = True
        try:
            self.run_once()
            self._poll_loop()
        finally:
            self._running = False

    def run_once(self) -> ProcessResult:
        """Process due jobs immediately."""
        return self._processor.process_due(self.worker_id, self._batch_size)

    @property
    def is_running(self) -> bool:
        return self._running

    def _poll_loop(self) -> None:
        while not self._stop_event.wait(timeout=self._poll_interval):
            try:
                result = self.run_once()
                if result.claimed > 0:
                    logger.info(
                        "Worker %s processed %d jobs: %d completed, %d retrying, %d failed",
                        self.worker_id,
                        result.claimed,
                        result.completed,
                        result.retrying,
                        result.failed,
                    )
            except Exception:
                logger.exception("Error in worker %s poll loop", self.worker_id)
