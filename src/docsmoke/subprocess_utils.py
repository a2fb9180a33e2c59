"""Subprocess execution with bounded output and a hard timeout.

- run_command: start a process in its own session, drain stdout/stderr
  concurrently into bounded buffers (prevents the 64KB pipe deadlock and
  unbounded memory use), kill the whole tree on timeout or cancellation,
  kill leftover session members once the top-level process exits
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from docsmoke import constants
from docsmoke._logging import get_logger
from docsmoke.platform_utils import ProcessWrapper, kill_process_tree

logger = get_logger(__name__)


@dataclass
class BoundedBuffer:
    """Keeps the first `limit` bytes of a stream and counts the rest."""

    limit: int
    data: bytearray = field(default_factory=bytearray)
    total: int = 0

    def feed(self, chunk: bytes) -> None:
        self.total += len(chunk)
        room = self.limit - len(self.data)
        if room > 0:
            self.data.extend(chunk[:room])

    @property
    def truncated(self) -> bool:
        return self.total > len(self.data)

    def text(self) -> str:
        """Decode as UTF-8; a character split by the bound is dropped, not replaced."""
        data = bytes(self.data)
        if self.truncated:
            data = _drop_partial_character(data)
        return data.decode("utf-8", errors="replace")


def _drop_partial_character(data: bytes) -> bytes:
    """Strip an incomplete UTF-8 sequence from the end of `data`."""
    for back in range(1, min(4, len(data)) + 1):
        byte = data[-back]
        if byte & 0xC0 == 0x80:
            continue  # continuation byte
        if byte < 0x80:
            needed = 1
        elif byte >= 0xF0:
            needed = 4
        elif byte >= 0xE0:
            needed = 3
        else:
            needed = 2
        return data if needed <= back else data[:-back]
    return data


@dataclass(frozen=True)
class CommandOutcome:
    """What happened when a command ran."""

    argv: tuple[str, ...]
    exit_code: int | None
    stdout: str
    stderr: str
    truncated: bool
    timed_out: bool
    duration_seconds: float

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.exit_code == 0


async def _drain(stream: asyncio.StreamReader | None, buffer: BoundedBuffer) -> None:
    """Read a stream to EOF, keeping only what fits in the buffer."""
    if stream is None:
        return
    while chunk := await stream.read(constants.READ_CHUNK_BYTES):
        buffer.feed(chunk)


async def run_command(
    argv: Sequence[str],
    *,
    cwd: Path,
    timeout: float,
    output_limit: int,
    env: Mapping[str, str] | None = None,
    name: str = "command",
    context_id: str = "",
) -> CommandOutcome:
    """Run a command to completion or until `timeout` seconds pass.

    Output captured before a timeout is kept; the process tree is killed
    with SIGKILL and the outcome is marked timed_out. The tree is also
    killed when the caller is cancelled. Once the top-level process exits,
    anything it left running in its session is killed, so detached
    background jobs neither outlive the step nor hold it open.

    Args:
        argv: Command and arguments
        cwd: Working directory
        timeout: Hard limit in seconds
        output_limit: Bytes kept per stream
        env: Environment for the child (None inherits)
        name: Step name for logging (e.g. "build", "run")
        context_id: Block label for log correlation

    Raises:
        FileNotFoundError: The executable does not exist
        OSError: The executable cannot be started (permissions, bad format)
    """
    started = time.monotonic()
    proc = await asyncio.create_subprocess_exec(
        *argv,
        cwd=cwd,
        env=dict(env) if env is not None else None,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        start_new_session=True,
    )
    wrapper = ProcessWrapper(proc)
    stdout = BoundedBuffer(output_limit)
    stderr = BoundedBuffer(output_limit)
    timed_out = False

    logger.debug(
        f"Started {name}",
        extra={"context_id": context_id, "pid": proc.pid, "argv": list(argv)},
    )
    try:
        async with asyncio.timeout(timeout):
            async with asyncio.TaskGroup() as tg:
                tg.create_task(_drain(wrapper.stdout, stdout))
                tg.create_task(_drain(wrapper.stderr, stderr))
                await wrapper.wait_exited(constants.LEADER_POLL_SECONDS)
                # Background jobs holding the pipes would keep the drains alive
                if wrapper.kill_group():
                    logger.debug(
                        f"Signalled {name} process group",
                        extra={"context_id": context_id, "pid": proc.pid},
                    )
            await wrapper.wait()
    except TimeoutError:
        timed_out = True
        logger.warning(
            f"{name} timed out after {timeout}s",
            extra={"context_id": context_id, "pid": proc.pid, "timeout": timeout},
        )
    finally:
        if timed_out or wrapper.returncode is None:
            await kill_process_tree(wrapper, name, context_id, wait_timeout=constants.KILL_WAIT_SECONDS)

    return CommandOutcome(
        argv=tuple(argv),
        exit_code=wrapper.returncode,
        stdout=stdout.text(),
        stderr=stderr.text(),
        truncated=stdout.truncated or stderr.truncated,
        timed_out=timed_out,
        duration_seconds=time.monotonic() - started,
    )
