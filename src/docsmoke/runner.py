"""Sandbox runner: build and run classified code blocks in scratch areas.

Each block gets its own scratch directory, used as the working directory
and TMPDIR of every step, so snippets that write relative files never touch
the repository. Blocks share no mutable state; run_many() can therefore
execute them through a bounded pool and still return results in input order.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Sequence
from pathlib import Path

from docsmoke._logging import get_logger
from docsmoke.config import RunConfig
from docsmoke.exceptions import ScratchError, ToolchainUnavailableError
from docsmoke.models import Classification, CodeBlock, ExecutionResult, Status, Strategy
from docsmoke.scratch import ScratchArea
from docsmoke.subprocess_utils import CommandOutcome, run_command
from docsmoke.toolchains import Toolchain, ToolchainRegistry

logger = get_logger(__name__)


class SandboxRunner:
    """Executes compilable blocks with a bounded timeout per step.

    Status mapping:
        build fails or times out         → compile-failed
        build succeeds, build-only block → compiled
        run exits 0                      → ran-ok
        run exits nonzero or times out   → ran-failed
        toolchain missing / annotated    → skipped
    """

    def __init__(self, config: RunConfig | None = None, registry: ToolchainRegistry | None = None) -> None:
        self.config = config or RunConfig()
        self.registry = registry or ToolchainRegistry.from_settings()

    async def run(self, block: CodeBlock, classification: Classification) -> ExecutionResult:
        """Execute one block.

        Raises:
            ValueError: The block is prose-only; such blocks never reach the runner
        """
        if classification.strategy is Strategy.PROSE_ONLY:
            raise ValueError(f"{block.label}: prose-only blocks are not executable")
        if classification.skip_reason is not None or classification.strategy is Strategy.SHELL_TRANSCRIPT:
            return self._skipped(block, classification.skip_reason or "shell transcript")
        if classification.toolchain is None:
            raise ValueError(f"{block.label}: compilable block without a toolchain")

        toolchain = self.registry.get(classification.toolchain)
        started = time.monotonic()
        try:
            result = await self._execute(block, toolchain, build_only=classification.build_only)
        except ToolchainUnavailableError as e:
            logger.info(f"{block.label}: {e.message}", extra={"context_id": block.label, **e.context})
            return self._skipped(block, e.message)
        except ScratchError as e:
            logger.error(f"{block.label}: {e.message}", extra={"context_id": block.label, **e.context})
            return ExecutionResult(
                block=block,
                status=Status.RAN_FAILED,
                stderr=e.message,
                duration_seconds=time.monotonic() - started,
                reason=e.message,
            )

        logger.info(
            f"{block.label}: {result.status.value}",
            extra={"context_id": block.label, "status": result.status.value, "duration": result.duration_seconds},
        )
        return result

    async def run_many(self, items: Sequence[tuple[CodeBlock, Classification]]) -> list[ExecutionResult]:
        """Execute blocks through a pool of `config.max_workers`.

        Returns:
            One result per item, in the order of `items` (not completion order)
        """
        semaphore = asyncio.Semaphore(self.config.max_workers)
        results: list[ExecutionResult | None] = [None] * len(items)

        async def worker(index: int, block: CodeBlock, classification: Classification) -> None:
            async with semaphore:
                results[index] = await self.run(block, classification)

        async with asyncio.TaskGroup() as tg:
            for index, (block, classification) in enumerate(items):
                tg.create_task(worker(index, block, classification), name=f"docsmoke:{block.label}")

        return [result for result in results if result is not None]

    async def _execute(self, block: CodeBlock, toolchain: Toolchain, *, build_only: bool) -> ExecutionResult:
        config = self.config
        started = time.monotonic()

        async with ScratchArea(config.scratch_root, label=block.label) as scratch:
            await scratch.write(toolchain.source_name, block.source)
            env = {**os.environ, "TMPDIR": str(scratch.path)}

            build = await self._step(
                toolchain.build_command(scratch.path, build_only=build_only), toolchain, scratch.path, env, "build", block
            )
            if not build.ok:
                return self._from_outcome(block, Status.COMPILE_FAILED, build, started)

            run_argv = toolchain.run_command(scratch.path)
            if build_only or run_argv is None:
                return self._from_outcome(block, Status.COMPILED, build, started)

            run = await self._step(run_argv, toolchain, scratch.path, env, "run", block)
            status = Status.RAN_OK if run.ok else Status.RAN_FAILED
            return self._from_outcome(block, status, run, started)

    async def _step(
        self,
        argv: list[str],
        toolchain: Toolchain,
        cwd: Path,
        env: dict[str, str],
        name: str,
        block: CodeBlock,
    ) -> CommandOutcome:
        try:
            return await run_command(
                argv,
                cwd=cwd,
                timeout=self.config.timeout_seconds,
                output_limit=self.config.output_limit_bytes,
                env=env,
                name=f"{toolchain.name} {name}",
                context_id=block.label,
            )
        except FileNotFoundError as e:
            if argv[0] == toolchain.binary:
                raise ToolchainUnavailableError(toolchain.name, toolchain.binary) from e
            raise ScratchError(f"cannot execute {argv[0]}: {e}", {"label": block.label}) from e
        except OSError as e:
            raise ScratchError(f"cannot execute {argv[0]}: {e}", {"label": block.label}) from e

    def _from_outcome(self, block: CodeBlock, status: Status, outcome: CommandOutcome, started: float) -> ExecutionResult:
        reason = None
        if outcome.timed_out:
            reason = f"timed out after {self.config.timeout_seconds:g}s"
        return ExecutionResult(
            block=block,
            status=status,
            exit_code=outcome.exit_code,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            truncated=outcome.truncated,
            timed_out=outcome.timed_out,
            duration_seconds=time.monotonic() - started,
            reason=reason,
        )

    @staticmethod
    def _skipped(block: CodeBlock, reason: str) -> ExecutionResult:
        return ExecutionResult(block=block, status=Status.SKIPPED, reason=reason)
