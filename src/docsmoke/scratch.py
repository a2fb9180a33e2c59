"""Scratch locations: one private directory per block execution.

The directory name is unique (mkdtemp), so concurrent blocks and concurrent
docsmoke runs never collide. The directory is removed on every exit path of
the `async with` block, including timeouts, cancellation and crashes.
"""

from __future__ import annotations

import asyncio
import re
import shutil
import tempfile
from pathlib import Path
from types import TracebackType

import aiofiles
import aiofiles.os

from docsmoke import constants
from docsmoke._logging import get_logger
from docsmoke.exceptions import ScratchError

logger = get_logger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]+")


def _slug(label: str) -> str:
    return _UNSAFE.sub("-", label).strip("-")[-40:] or "block"


class ScratchArea:
    """Async context manager owning a temporary directory.

    Usage:
        async with ScratchArea(root, label="guide.md#3") as scratch:
            source = await scratch.write("snippet.py", code)
    """

    def __init__(self, root: Path | None = None, *, label: str = "block") -> None:
        self._root = root
        self._label = label
        self._path: Path | None = None

    @property
    def path(self) -> Path:
        if self._path is None:
            raise ScratchError("scratch area is not open", {"label": self._label})
        return self._path

    async def __aenter__(self) -> ScratchArea:
        prefix = f"{constants.SCRATCH_PREFIX}{_slug(self._label)}-"
        try:
            if self._root is not None:
                await aiofiles.os.makedirs(self._root, exist_ok=True)
            created = await asyncio.to_thread(tempfile.mkdtemp, prefix=prefix, dir=self._root)
        except OSError as e:
            raise ScratchError(
                f"cannot create scratch area: {e}",
                {"label": self._label, "root": str(self._root) if self._root else None},
            ) from e
        self._path = Path(created)
        logger.debug("Scratch area created", extra={"context_id": self._label, "path": created})
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        path, self._path = self._path, None
        await cleanup_scratch_dir(path, self._label)

    async def write(self, name: str, content: str) -> Path:
        """Write a UTF-8 text file inside the scratch area."""
        target = self.path / name
        try:
            async with aiofiles.open(target, "w", encoding="utf-8") as f:
                await f.write(content)
        except OSError as e:
            raise ScratchError(f"cannot write {target}: {e}", {"label": self._label}) from e
        return target


async def cleanup_scratch_dir(path: Path | None, context_id: str) -> bool:
    """Remove a scratch directory tree.

    Silently succeeds if the directory doesn't exist. Never raises: errors
    are logged and reported through the return value.

    Args:
        path: Directory to remove (None safe - returns immediately)
        context_id: Context for logging (block label)

    Returns:
        True if the directory is gone, False if removal failed
    """
    if path is None:
        return True

    try:
        # shield: removal must finish even if the caller is being cancelled
        await asyncio.shield(asyncio.to_thread(shutil.rmtree, path))
        logger.debug("Scratch area removed", extra={"context_id": context_id, "path": str(path)})
        return True

    except FileNotFoundError:
        return True

    except OSError as e:
        logger.error(
            "Scratch area removal error",
            extra={"context_id": context_id, "path": str(path), "error": str(e), "error_type": type(e).__name__},
        )
        return False
