"""
Persistent worker pool with a begin/complete handshake.

Each Worker owns one long-lived thread and two semaphores. Between runs the
thread is parked on its begin signal; WorkerPool.run() releases every begin
signal, runs the same task on the calling thread, then acquires every
complete signal. The calling thread always participates, so the effective
parallelism is the pool size + 1.

Resizing goes through the same signalling: a removed worker has its liveness
flag cleared and its begin signal released so that it wakes, observes that it
is dead and exits, and is then joined.

The pool does no locking of its own. Callers must not resize it while run()
is in progress (Solver serializes both behind one lock).
"""

import itertools
import logging
import threading
from typing import Callable, List, Optional

from .errors import WorkerError

logger = logging.getLogger(__name__)


class Worker:
    """One pool thread, idle on its begin signal between runs."""

    def __init__(self, task: Callable[[], None], name: str):
        self.name = name
        self._task = task
        # Both are used as binary semaphores: the handshake never releases twice
        self.begin_signal = threading.Semaphore(0)
        self.complete_signal = threading.Semaphore(0)
        self.alive = True
        self.error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._loop, name=name, daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        while self.alive:
            self.begin_signal.acquire()

            # Woken by stop()
            if not self.alive:
                break

            self.error = None
            try:
                self._task()
            except Exception as e:
                logger.exception("Worker %s failed during search pass", self.name)
                self.error = e
            finally:
                self.complete_signal.release()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Clear liveness, release the begin signal and join the thread."""
        self.alive = False
        self.begin_signal.release()
        self._thread.join(timeout)

    def is_running(self) -> bool:
        return self._thread.is_alive()


class WorkerPool:
    """
    Dynamically resizable set of Workers all running the same task.

    Args:
        task: Zero-argument callable run once per worker per run()
        size: Number of workers to start with
        name_prefix: Thread name prefix, suffixed with a serial number
    """

    def __init__(self, task: Callable[[], None], size: int = 0, name_prefix: str = "astar-worker"):
        if size < 0:
            raise ValueError(f"pool size must be >= 0, got {size}")
        self._task = task
        self._name_prefix = name_prefix
        self._serial = itertools.count(1)
        self._workers: List[Worker] = []
        for _ in range(size):
            self.add_worker()

    def __len__(self) -> int:
        return len(self._workers)

    @property
    def workers(self) -> List[Worker]:
        return list(self._workers)

    def current_parallelism(self) -> int:
        """Pool size plus the calling thread."""
        return len(self._workers) + 1

    def add_worker(self) -> Worker:
        """Append a new idle worker; it takes part in the next run()."""
        worker = Worker(self._task, f"{self._name_prefix}-{next(self._serial)}")
        self._workers.append(worker)
        logger.info("Added %s (parallelism %d)", worker.name, self.current_parallelism())
        return worker

    def remove_worker(self) -> bool:
        """
        Tear down the most recently added worker.

        Returns:
            False if the pool was already empty
        """
        if not self._workers:
            return False
        worker = self._workers.pop()
        worker.stop()
        logger.info("Removed %s (parallelism %d)", worker.name, self.current_parallelism())
        return True

    def run(self) -> None:
        """
        Run the task on every worker and on the calling thread, blocking until
        all of them have finished.

        Raises:
            WorkerError: a worker's task raised (the first failure, chained)
        """
        workers = list(self._workers)
        for worker in workers:
            worker.begin_signal.release()

        try:
            self._task()
        finally:
            # Order does not matter, each worker signals independently
            for worker in workers:
                worker.complete_signal.acquire()

        for worker in workers:
            if worker.error is not None:
                error, worker.error = worker.error, None
                raise WorkerError(worker.name, error) from error

    def close(self) -> None:
        """Stop and join every worker."""
        while self.remove_worker():
            pass
