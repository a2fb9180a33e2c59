"""Exception hierarchy for docsmoke.

All exceptions inherit from DocSmokeError.

Hierarchy:
    DocSmokeError (base)
    ├── DocumentError (per-document, never aborts other documents)
    │   ├── MalformedBlockError      ← unterminated fence
    │   └── DocumentLoadError        ← unreadable / undecodable file
    ├── UsageError                   ← bad paths or arguments (CLI exit 2)
    ├── ToolchainUnavailableError    ← compiler/interpreter missing (→ skipped)
    └── ScratchError                 ← scratch area could not be prepared, or a step could not start
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class DocSmokeError(Exception):
    """Base exception for all docsmoke errors with structured context.

    Attributes:
        message: Human-readable error message
        context: Dictionary of structured error context for logging/reporting
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


# =============================================================================
# Document Errors (isolated per document)
# =============================================================================


class DocumentError(DocSmokeError):
    """Base for errors tied to one Markdown document.

    Attributes:
        path: Document the error originates from
    """

    kind: str = "document"

    def __init__(self, message: str, path: Path, context: dict[str, Any] | None = None):
        ctx = context or {}
        ctx.setdefault("path", str(path))
        super().__init__(message, ctx)
        self.path = path


class MalformedBlockError(DocumentError):
    """A fenced code block was opened but never closed.

    Raised by the extractor when the document ends inside a fence. Blocks
    yielded before the error remain valid.

    Attributes:
        ordinal: Ordinal the unterminated block would have had
        line: 1-based line of the opening fence
    """

    kind = "malformed"

    def __init__(self, path: Path, ordinal: int, line: int):
        super().__init__(
            f"{path}: block {ordinal} opened at line {line} is never closed",
            path,
            {"ordinal": ordinal, "line": line},
        )
        self.ordinal = ordinal
        self.line = line


class DocumentLoadError(DocumentError):
    """Document could not be read or decoded as UTF-8."""

    kind = "unreadable"


# =============================================================================
# Usage and Environment Errors
# =============================================================================


class UsageError(DocSmokeError):
    """Invalid paths or arguments; fatal before any processing."""


class ToolchainUnavailableError(DocSmokeError):
    """Compiler or interpreter for a block's language is not installed.

    Never fatal: the runner downgrades it to a skipped result.
    """

    def __init__(self, toolchain: str, binary: str):
        super().__init__(
            f"toolchain {toolchain} unavailable ({binary} not found)",
            {"toolchain": toolchain, "binary": binary},
        )
        self.toolchain = toolchain
        self.binary = binary


class ScratchError(DocSmokeError):
    """Scratch location could not be created or populated, or a step could not be started."""
