"""Debounced, generation-checked recomputation of per-image results.

Every request for an image bumps that image's generation.  A debounced
request waits for a quiet period before starting; a timer that fires after
a newer request never starts its job, and a job that finishes after a newer
request has its result dropped.  Applying a result is a check-and-assign
under one lock, so a consumer sees the previous finished result or the new
one and never a mix.

Jobs themselves share nothing: each gets its own source reference (buffers
are read-only) and its own settings snapshot.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Hashable, Optional

from score_cli.buffer import PixelBuffer
from score_cli.crop import ProcessResult
from score_cli.errors import ProcessingError
from score_cli.pipeline import process
from score_cli.settings import ProcessingSettings

logger = logging.getLogger(__name__)

DEFAULT_DELAY = 0.3


@dataclass(frozen=True)
class Job:
    key: Hashable
    generation: int
    settings: ProcessingSettings


ResultCallback = Callable[[Job, ProcessResult], None]
ErrorCallback = Callable[[Job, ProcessingError], None]


class PreviewScheduler:
    def __init__(
        self,
        compute: Callable[[PixelBuffer, ProcessingSettings], ProcessResult] = process,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        delay: float = DEFAULT_DELAY,
        executor=None,
        timer_factory=threading.Timer,
        workers: Optional[int] = None,
    ) -> None:
        self.compute = compute
        self.on_result = on_result
        self.on_error = on_error
        self.delay = delay
        self._timer_factory = timer_factory
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="score-job"
        )
        self._lock = threading.Lock()
        self._generations: dict[Hashable, int] = {}
        self._timers: dict[Hashable, tuple[int, object]] = {}
        self._futures: set[Future] = set()

    # ── Requests ──────────────────────────────────────────────────────────

    def request(self, key: Hashable, source: PixelBuffer, settings: ProcessingSettings) -> int:
        """Schedule a recompute of *key* after the quiet period; return its generation."""
        with self._lock:
            job = self._new_job(key, settings)
            timer = self._timer_factory(self.delay, self._start, args=(job, source))
            timer.daemon = True
            self._timers[key] = (job.generation, timer)
        timer.start()
        logger.debug("Debounced %r generation %d", key, job.generation)
        return job.generation

    def submit_now(
        self, key: Hashable, source: PixelBuffer, settings: ProcessingSettings
    ) -> Optional[Future]:
        """Start computing *key* immediately, superseding anything pending."""
        with self._lock:
            job = self._new_job(key, settings)
        return self._start(job, source)

    def cancel(self, key: Hashable) -> None:
        """Drop any pending or in-flight work for *key*."""
        with self._lock:
            self._generations[key] = self._generations.get(key, 0) + 1
            pending = self._timers.pop(key, None)
        if pending is not None:
            pending[1].cancel()

    def latest_generation(self, key: Hashable) -> int:
        with self._lock:
            return self._generations.get(key, 0)

    def is_current(self, job: Job) -> bool:
        with self._lock:
            return self._is_current(job)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for every job that has started."""
        with self._lock:
            pending = set(self._futures)
        if pending:
            wait(pending, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            timers = [timer for _, timer in self._timers.values()]
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    # ── Internals ─────────────────────────────────────────────────────────

    def _new_job(self, key: Hashable, settings: ProcessingSettings) -> Job:
        # Caller holds the lock.
        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation
        pending = self._timers.pop(key, None)
        if pending is not None:
            pending[1].cancel()
        return Job(key=key, generation=generation, settings=settings)

    def _is_current(self, job: Job) -> bool:
        return self._generations.get(job.key) == job.generation

    def _start(self, job: Job, source: PixelBuffer) -> Optional[Future]:
        with self._lock:
            pending = self._timers.get(job.key)
            if pending is not None and pending[0] == job.generation:
                del self._timers[job.key]
            if not self._is_current(job):
                logger.debug("Skipping superseded %r generation %d", job.key, job.generation)
                return None
        future = self._executor.submit(self._run, job, source)
        with self._lock:
            if not future.done():
                self._futures.add(future)
        future.add_done_callback(lambda f: self._forget(f, job))
        return future

    def _forget(self, future: Future, job: Job) -> None:
        with self._lock:
            self._futures.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        # ProcessingError was already reported through on_error.
        if error is not None and not isinstance(error, ProcessingError):
            logger.error(
                "Unexpected error computing %r generation %d", job.key, job.generation,
                exc_info=error,
            )

    def _run(self, job: Job, source: PixelBuffer) -> Optional[ProcessResult]:
        if not self.is_current(job):
            return None
        try:
            result = self.compute(source, job.settings)
        except ProcessingError as e:
            logger.info("Processing %r failed: %s", job.key, e)
            with self._lock:
                if self._is_current(job) and self.on_error is not None:
                    self.on_error(job, e)
            raise
        with self._lock:
            if not self._is_current(job):
                logger.debug("Discarding stale result for %r generation %d", job.key, job.generation)
                return None
            if self.on_result is not None:
                self.on_result(job, result)
        return result
