"""Fire-and-forget notification command runner."""

import logging
import subprocess
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Optional


logger = logging.getLogger(__name__)


class Notifier:
    """Runs the configured command once per newly compromised account.

    Commands are queued on a small thread pool so the verdict path never
    waits for them. The request attributes become the command's environment.

    Attributes:
        command: Shell command line, or None to disable notifications.
        timeout: Seconds before a running command is killed.
    """

    def __init__(
        self, command: Optional[str], timeout: int = 30, max_workers: int = 2
    ):
        self.command = command
        self.timeout = timeout
        self._executor: Optional[ThreadPoolExecutor] = None
        if command:
            self._executor = ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="notify"
            )

    def submit(self, attrs: Dict[str, str]) -> Optional[Future]:
        """Queue one command invocation.

        Args:
            attrs: Request attributes, copied into the command environment.

        Returns:
            Optional[Future]: Handle of the queued run, None when disabled.
        """
        if self._executor is None:
            return None

        env = {str(k): str(v) for k, v in attrs.items() if k and "\0" not in k + v}
        return self._executor.submit(self._run, env)

    def _run(self, env: Dict[str, str]) -> int | None:
        instance = env.get("instance")
        try:
            completed = subprocess.run(
                self.command,
                shell=True,
                env=env,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error(
                f"[{instance}] command \"{self.command}\" timed out after {self.timeout}s"
            )
            return None
        except OSError as e:
            logger.error(f"[{instance}] command \"{self.command}\" failed to start: {e}")
            return None

        output = " ".join(
            part.strip() for part in (completed.stdout, completed.stderr) if part
        )
        if completed.returncode != 0:
            logger.error(
                f"[{instance}] command \"{self.command}\" returned error: "
                f"exit code {completed.returncode} {output}".strip()
            )
        elif output:
            logger.info(f"[{instance}] {self.command}: {output}")

        return completed.returncode

    def shutdown(self, wait: bool = False) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
