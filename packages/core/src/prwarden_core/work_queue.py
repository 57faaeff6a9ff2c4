"""Bounded in-process work queue between webhook acceptance and review processing.

The webhook handler accepts the event (entities resolved, pending review
stored) and submits a ReviewJob here; worker threads run the slow part of the
pipeline. The HTTP response therefore never waits on GitHub or the model.
"""

from __future__ import annotations

import logging
import queue
import threading

from prwarden_core.errors import QueueFullError
from prwarden_core.orchestrator import ReviewJob, ReviewOrchestrator

logger = logging.getLogger(__name__)

_STOP = object()


class ReviewQueue:
    def __init__(
        self,
        orchestrator: ReviewOrchestrator,
        maxsize: int = 100,
        workers: int = 2,
        enqueue_timeout: float = 5,
    ):
        self.orchestrator = orchestrator
        self.enqueue_timeout = enqueue_timeout
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._worker_count = workers
        self._threads: list[threading.Thread] = []

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        if self._threads:
            return
        for i in range(self._worker_count):
            t = threading.Thread(target=self._run, name=f"prwarden-worker-{i}", daemon=True)
            t.start()
            self._threads.append(t)
        logger.info("Review queue started with %d worker(s)", self._worker_count)

    def submit(self, job: ReviewJob) -> None:
        """Enqueue a job, blocking up to enqueue_timeout seconds when the queue is full."""
        try:
            self._queue.put(job, timeout=self.enqueue_timeout)
        except queue.Full:
            logger.error("Review queue full; rejecting review %d for %s", job.review_id, job.label)
            raise QueueFullError("Review queue is full") from None
        logger.debug("Queued review %d for %s", job.review_id, job.label)

    def join(self) -> None:
        """Block until every submitted job has been processed."""
        self._queue.join()

    def stop(self, timeout: float | None = None) -> None:
        """Let workers finish the jobs already queued, then shut them down."""
        for _ in self._threads:
            self._queue.put(_STOP)
        for t in self._threads:
            t.join(timeout)
        self._threads = []

    def _run(self) -> None:
        while True:
            job = self._queue.get()
            try:
                if job is _STOP:
                    return
                self.orchestrator.process(job)
            except Exception:
                # process() already stored the failure on the review.
                logger.exception("Review %d for %s failed", job.review_id, job.label)
            finally:
                self._queue.task_done()
