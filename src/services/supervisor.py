"""Worker process supervision.

The supervisor keeps a fixed number of worker processes running. A worker
that exits with EXIT_STARTUP_FAILURE never managed to start (socket bind or
Redis failure) and is not restarted, so a broken deployment cannot turn into
a crash loop. Any other exit is treated as a crash and the worker is
replaced.
"""

import logging
import multiprocessing
from multiprocessing.connection import wait
from typing import Callable, Dict

from src.config import Config


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_STARTUP_FAILURE = 2


class Supervisor:
    """Starts, watches and restarts worker processes.

    Attributes:
        config: Application configuration passed to every worker.
        worker_target: Picklable callable run as ``target(config, worker_id)``.
        poll_interval: Seconds between liveness checks.
    """

    def __init__(
        self,
        config: Config,
        worker_target: Callable[[Config, str], None],
        poll_interval: float = 1.0,
    ):
        self.config = config
        self.worker_target = worker_target
        self.poll_interval = poll_interval
        self._workers: Dict[int, multiprocessing.Process] = {}
        self._next_id = 1
        self._stopping = False

    @property
    def workers(self) -> Dict[int, multiprocessing.Process]:
        return self._workers

    def _spawn(self) -> multiprocessing.Process:
        worker_id = self._next_id
        self._next_id += 1
        proc = multiprocessing.Process(
            target=self.worker_target,
            args=(self.config, str(worker_id)),
            name=f"policyd-worker-{worker_id}",
        )
        proc.start()
        self._workers[worker_id] = proc
        logger.debug(f"worker {worker_id} online with PID {proc.pid}")
        return proc

    def reap(self) -> int:
        """Handle exited workers once.

        Returns:
            int: Number of workers that failed at startup in this pass.
        """
        startup_failures = 0
        for worker_id, proc in list(self._workers.items()):
            if proc.is_alive():
                continue

            proc.join()
            del self._workers[worker_id]
            if proc.exitcode == EXIT_STARTUP_FAILURE:
                # Never listened; the last one to go ends the supervisor
                startup_failures += 1
                logger.error(f"worker {worker_id} with PID {proc.pid} failed to start")
            elif not self._stopping:
                logger.warning(
                    f"worker {worker_id} with PID {proc.pid} died (code: {proc.exitcode})"
                )
                self._spawn()
        return startup_failures

    def run(self) -> int:
        """Start the workers and supervise them until stopped.

        Returns:
            int: EXIT_OK after stop(), EXIT_STARTUP_FAILURE if every worker
            failed to start.
        """
        for _ in range(self.config.workers):
            self._spawn()

        startup_failures = 0
        while self._workers:
            wait([p.sentinel for p in self._workers.values()], self.poll_interval)
            startup_failures += self.reap()

        if not self._stopping and startup_failures:
            return EXIT_STARTUP_FAILURE
        return EXIT_OK

    def stop(self) -> None:
        """Terminate all workers; run() returns once they have exited."""
        self._stopping = True
        for proc in self._workers.values():
            if proc.is_alive():
                proc.terminate()
