"""
=============================================================================
THREAD POOL
=============================================================================

A bounded pool of worker threads for handling connections.

=============================================================================
WHY NOT A THREAD PER CONNECTION?
=============================================================================

Spawning a thread for every accepted socket is simple, but nothing
stops a burst of clients from creating thousands of threads. The pool
bounds both the number of threads and the number of connections
waiting for one:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop ──submit()──►  ┌───────────────┐                       │
    │                              │   job queue   │  at most queue_size   │
    │                              └──────┬────────┘                       │
    │                   ┌─────────────────┼─────────────────┐              │
    │                   ▼                 ▼                 ▼              │
    │          minihttp-worker-0  minihttp-worker-1 ... minihttp-worker-N  │
    │                                                  N < max_workers     │
    │                                                                      │
    │   Queue full → submit() waits up to queue_timeout, then gives up.    │
    │   More jobs (queued + running) than workers → one more is started.   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Workers catch and log every exception a job raises, so one bad
connection never takes a worker down. Workers are never retired
before shutdown; the pool only grows.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Job:
    """func(*args), stamped with the time it entered the queue."""

    func: Callable[..., Any]
    args: tuple = ()
    on_discard: Optional[Callable[..., Any]] = None
    enqueued_at: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class PoolStats:
    """Point-in-time view of the pool."""

    workers: int
    busy: int
    queued: int
    completed: int
    failed: int


class Worker(threading.Thread):
    """
    Runs jobs from the shared queue until the pool's stop event is set.

    The queue get() times out every poll_interval seconds so an idle
    worker still notices the stop event.
    """

    def __init__(self, pool: "ThreadPool", worker_id: int, poll_interval: float = 1.0):
        super().__init__(name=f"minihttp-worker-{worker_id}", daemon=True)
        self.pool = pool
        self.worker_id = worker_id
        self.poll_interval = poll_interval
        self.busy = False

    def run(self):
        jobs = self.pool._jobs
        stopping = self.pool._stopping

        while not stopping.is_set():
            try:
                job = jobs.get(timeout=self.poll_interval)
            except queue.Empty:
                continue

            try:
                self._run_job(job)
            finally:
                jobs.task_done()

        logger.debug(f"{self.name} exiting")

    def _run_job(self, job: Job):
        self.busy = True
        waited = time.monotonic() - job.enqueued_at
        if waited > 0.5:
            logger.debug(f"{self.name}: job waited {waited:.3f}s for a worker")

        try:
            job.func(*job.args)
        except Exception as e:
            logger.exception(f"{self.name}: job raised {type(e).__name__}: {e}")
            self.pool._record(failed=True)
        else:
            self.pool._record(failed=False)
        finally:
            self.busy = False


class ThreadPool:
    """
    Grow-only worker pool in front of a bounded job queue.

        pool = ThreadPool(min_workers=4, max_workers=16, queue_size=64)
        pool.start()
        pool.submit(process_connection, args=(conn,), queue_timeout=30.0)
        ...
        pool.shutdown()
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 64,
    ):
        """
        Args:
            min_workers: Workers started by start().
            max_workers: Hard ceiling on worker threads.
            queue_size: Jobs allowed to wait for a worker.
        """
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size

        self._jobs: "queue.Queue[Job]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._stopping = threading.Event()
        self._lock = threading.Lock()  # Guards _workers and the counters
        self._pending = 0  # queued plus running jobs
        self._running = False
        self._completed = 0
        self._failed = 0

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        """Start min_workers workers. Calling it twice does nothing."""
        if self._running:
            return

        self._stopping.clear()
        with self._lock:
            while len(self._workers) < self.min_workers:
                self._spawn()
        self._running = True
        logger.info(
            f"Worker pool up: {self.min_workers} threads "
            f"(max {self.max_workers}, queue {self.queue_size})"
        )

    def _spawn(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(self, worker_id=len(self._workers))
        self._workers.append(worker)
        worker.start()
        return worker

    def _record(self, failed: bool):
        with self._lock:
            self._pending -= 1
            if failed:
                self._failed += 1
            else:
                self._completed += 1

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        block: bool = True,
        queue_timeout: Optional[float] = None,
        on_discard: Optional[Callable[..., Any]] = None,
    ) -> bool:
        """
        Queue func(*args) for a worker.

        Args:
            block: Wait for room if the queue is full.
            queue_timeout: Longest wait for room; None waits forever.
            on_discard: Called as on_discard(*args) if shutdown() drops
                        the job before a worker reaches it.

        Returns:
            True if queued, False if the queue stayed full.

        Raises:
            RuntimeError: The pool is not running.
        """
        if not self._running:
            raise RuntimeError("Thread pool is not running")

        # Count the job before a worker can possibly finish it
        with self._lock:
            self._pending += 1
        try:
            self._jobs.put(Job(func, args, on_discard), block=block, timeout=queue_timeout)
        except queue.Full:
            with self._lock:
                self._pending -= 1
            return False

        self._grow_if_saturated()
        return True

    def _grow_if_saturated(self):
        """
        One more worker when there are more jobs than workers.

        Counts jobs rather than reading Worker.busy: a worker that has
        just taken a job off the queue is not yet marked busy.
        """
        with self._lock:
            if self._pending > len(self._workers) and len(self._workers) < self.max_workers:
                worker = self._spawn()
                logger.debug(f"{self._pending} jobs for {len(self._workers) - 1} workers, started {worker.name}")

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool. New submits are refused at once.

        Args:
            wait: Let queued jobs start first (bounded by timeout).
            timeout: Seconds to wait for the queue to drain.

        Jobs still queued once the workers have stopped are dropped;
        each one's on_discard callback runs so its connection is closed.
        """
        if not self._running:
            return
        self._running = False

        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._jobs.empty():
                if deadline is not None and time.monotonic() > deadline:
                    break
                time.sleep(0.05)

        # Workers finish the job in hand, then see the event
        self._stopping.set()
        with self._lock:
            workers, self._workers = self._workers, []
        for worker in workers:
            worker.join(timeout=2.0)

        dropped = self._discard_queued()
        if dropped:
            logger.warning(f"Dropped {dropped} queued connections at shutdown")

        logger.info("Worker pool stopped")

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.busy)

    @property
    def stats(self) -> PoolStats:
        with self._lock:
            return PoolStats(
                workers=len(self._workers),
                busy=sum(1 for w in self._workers if w.busy),
                queued=self._jobs.qsize(),
                completed=self._completed,
                failed=self._failed,
            )

    def _discard_queued(self) -> int:
        dropped = 0
        while True:
            try:
                job = self._jobs.get_nowait()
            except queue.Empty:
                return dropped

            dropped += 1
            try:
                if job.on_discard is not None:
                    job.on_discard(*job.args)
            except Exception as e:
                logger.exception(f"on_discard failed for dropped job: {e}")
            finally:
                self._jobs.task_done()
                with self._lock:
                    self._pending -= 1
