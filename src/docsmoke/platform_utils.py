"""Process management helpers.

Provides a PID-reuse safe wrapper around asyncio subprocesses that can
hard-kill a whole process tree (compilers and snippets both spawn children).
"""

import asyncio
import contextlib
import os
import signal

import psutil

from docsmoke._logging import get_logger

logger = get_logger(__name__)


class ProcessWrapper:
    """PID-reuse safe process wrapper using psutil.

    Wraps asyncio.subprocess.Process with psutil.Process for safer PID monitoring.
    Protects against PID reuse edge cases where OS recycles PIDs.
    """

    def __init__(self, async_proc: asyncio.subprocess.Process) -> None:
        """Wrap asyncio process with psutil for PID-safe monitoring.

        Args:
            async_proc: asyncio subprocess.Process instance
        """
        self.async_proc = async_proc
        self.psutil_proc: psutil.Process | None = None

        if async_proc.pid:
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                # Process already died or inaccessible
                self.psutil_proc = psutil.Process(async_proc.pid)

    @property
    def pid(self) -> int | None:
        """Process ID."""
        return self.async_proc.pid

    @property
    def returncode(self) -> int | None:
        """Process return code (None if still running)."""
        return self.async_proc.returncode

    @property
    def stdout(self) -> asyncio.StreamReader | None:
        return self.async_proc.stdout

    @property
    def stderr(self) -> asyncio.StreamReader | None:
        return self.async_proc.stderr

    async def wait(self) -> int:
        """Wait for process to complete.

        Returns:
            Process exit code
        """
        return await self.async_proc.wait()

    def has_exited(self) -> bool:
        """True once the leader is a zombie or has been reaped. Never reaps it."""
        if self.async_proc.returncode is not None:
            return True
        if self.psutil_proc is None:
            return False
        try:
            return self.psutil_proc.status() == psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return True
        except psutil.AccessDenied:
            return False

    async def wait_exited(self, poll_interval: float) -> None:
        """Wait for the leader to exit, without waiting for its pipes to close."""
        while not self.has_exited():
            await asyncio.sleep(poll_interval)

    def kill_group(self) -> bool:
        """SIGKILL everything left in the leader's process group.

        Subprocesses start in their own session, so pgid == pid and orphaned
        background jobs are still reachable through the group. The kernel does
        not recycle a pgid while any member is alive.

        Returns:
            True if the group still existed and was signalled
        """
        if not hasattr(os, "killpg") or not self.pid:
            return False
        try:
            os.killpg(self.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            return False
        return True

    def _children(self) -> list[psutil.Process]:
        if self.psutil_proc is None:
            return []
        try:
            return self.psutil_proc.children(recursive=True)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return []

    def _kill_tree_sync(self) -> int:
        """SIGKILL the process and every descendant. Returns processes signalled."""
        victims = self._children()
        if self.psutil_proc is not None:
            victims.append(self.psutil_proc)
        killed = 0
        for proc in victims:
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                proc.kill()
                killed += 1
        self.kill_group()
        if self.psutil_proc is None and self.async_proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self.async_proc.kill()
                killed += 1
        return killed

    async def kill_tree(self) -> int:
        """Kill process and descendants (SIGKILL) - async, non-blocking.

        Returns:
            Number of processes signalled
        """
        return await asyncio.to_thread(self._kill_tree_sync)


async def kill_process_tree(
    proc: ProcessWrapper | None,
    name: str,
    context_id: str,
    wait_timeout: float = 5.0,
) -> bool:
    """Hard-terminate a subprocess tree and reap it.

    Never raises: errors are logged and reported through the return value.

    Args:
        proc: ProcessWrapper to kill (None safe - returns immediately)
        name: Process name for logging (e.g., "build", "run")
        context_id: Context for logging (block label)
        wait_timeout: Seconds to wait for the process to be reaped

    Returns:
        True if the process is gone, False if it could not be reaped
    """
    if proc is None:
        return True

    try:
        if proc.returncode is not None:
            # Leader exited; descendants may still hold the pipes open.
            await proc.kill_tree()
            return True

        killed = await proc.kill_tree()
        logger.debug(
            f"Killed {name} process tree",
            extra={"context_id": context_id, "pid": proc.pid, "killed": killed},
        )
        try:
            await asyncio.wait_for(proc.wait(), timeout=wait_timeout)
        except TimeoutError:
            logger.error(
                f"{name} didn't exit after SIGKILL",
                extra={"context_id": context_id, "pid": proc.pid, "wait_timeout": wait_timeout},
            )
            return False
        return True

    except ProcessLookupError:
        logger.debug(f"{name} already dead (ProcessLookupError)", extra={"context_id": context_id})
        return True

    except Exception as e:
        logger.error(
            f"{name} cleanup error",
            extra={"context_id": context_id, "error": str(e), "error_type": type(e).__name__},
            exc_info=True,
        )
        return False
