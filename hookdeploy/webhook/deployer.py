"""Deploy launcher: runs the deploy script as a detached asyncio task."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from hookdeploy.errors import DeployError
from hookdeploy.log_context import set_log_context
from hookdeploy.webhook.models import DeployResult

logger = logging.getLogger(__name__)


class Deployer:
    """Fire-and-forget runner for the deploy script.

    Each `trigger` call spawns an independent task; nothing is queued or
    deduplicated.  The script inherits the server's stdout/stderr, and its
    exit status is only logged.  Tasks are held in a strong-reference set
    until they finish so the event loop cannot drop them mid-run.
    """

    def __init__(self, script: Path, *, timeout: float | None = None) -> None:
        self._script = script
        self._timeout = timeout
        self._tasks: set[asyncio.Task[DeployResult]] = set()

    @property
    def script(self) -> Path:
        return self._script

    @property
    def active(self) -> int:
        """Number of deploys still running."""
        return len(self._tasks)

    def trigger(self) -> asyncio.Task[DeployResult]:
        """Start a deploy in the background and return its task immediately."""
        task = asyncio.create_task(self._safe_run(), name="deploy")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Block until every running deploy has finished."""
        if not self._tasks:
            return
        logger.info("Waiting for %d running deploy(s) to finish", len(self._tasks))
        await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _safe_run(self) -> DeployResult:
        """Run the deploy, turning every failure into a logged result."""
        set_log_context(operation="deploy")
        started = time.monotonic()
        try:
            return await self.run()
        except DeployError as exc:
            logger.error("Deploy failed: %s", exc)  # noqa: TRY400
            status = "error:launch"
        except Exception:
            logger.exception("Deploy task crashed")
            status = "error:internal"
        return DeployResult(
            script=self._script,
            status=status,
            returncode=None,
            duration=time.monotonic() - started,
        )

    async def run(self) -> DeployResult:
        """Execute the script once and wait for it to exit.

        Raises `DeployError` when the process cannot be started.
        """
        logger.info("Starting deploy: %s", self._script)
        started = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                str(self._script),
                stdin=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            msg = f"cannot execute {self._script}: {exc}"
            raise DeployError(msg) from exc

        logger.debug("Deploy process started: pid=%d", proc.pid)

        timed_out = False
        try:
            async with asyncio.timeout(self._timeout):
                returncode = await proc.wait()
        except TimeoutError:
            timed_out = True
            logger.warning(
                "Deploy timed out after %.0fs, killing pid=%d", self._timeout, proc.pid
            )
            proc.kill()
            returncode = await proc.wait()

        duration = time.monotonic() - started
        if timed_out:
            status = "error:timeout"
        elif returncode == 0:
            status = "success"
        else:
            status = f"error:exit_{returncode}"

        result = DeployResult(
            script=self._script,
            status=status,
            returncode=returncode,
            duration=duration,
        )
        if result.ok:
            logger.info("Deploy succeeded in %.1fs", duration)
        else:
            logger.error("Deploy failed: status=%s after %.1fs", status, duration)
        return result
