"""Data models for docsmoke.

Every model is frozen: the pipeline (extract → classify → run → report)
creates values and never mutates them afterwards.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from docsmoke.exceptions import DocumentError, DocumentLoadError


class Strategy(str, Enum):
    """How a code block is handled."""

    COMPILABLE = "compilable"
    SHELL_TRANSCRIPT = "shell-transcript"
    PROSE_ONLY = "prose-only"


class Status(str, Enum):
    """Outcome of attempting to build/run a code block."""

    SKIPPED = "skipped"
    COMPILED = "compiled"
    COMPILE_FAILED = "compile-failed"
    RAN_OK = "ran-ok"
    RAN_FAILED = "ran-failed"

    @property
    def failed(self) -> bool:
        return self in (Status.COMPILE_FAILED, Status.RAN_FAILED)


class Document(BaseModel):
    """A Markdown source file and its raw text."""

    model_config = ConfigDict(frozen=True)

    path: Path
    text: str

    @classmethod
    def load(cls, path: Path) -> "Document":
        """Read a document as UTF-8.

        Raises:
            DocumentLoadError: File is missing, unreadable or not UTF-8
        """
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentLoadError(f"{path}: cannot read document: {e}", path) from e
        return cls(path=path, text=text)


class CodeBlock(BaseModel):
    """One fenced code block of a document."""

    model_config = ConfigDict(frozen=True)

    document_path: Path = Field(description="Owning document (back-reference only)")
    ordinal: int = Field(ge=1, description="1-based position among the document's blocks")
    language: str = Field(default="", description="Normalized language tag, may be empty")
    info: str = Field(default="", description="Raw info string of the opening fence")
    source: str = Field(description="Text between the fences")
    start_line: int = Field(ge=1, description="1-based line of the opening fence")
    annotations: frozenset[str] = Field(default_factory=frozenset)

    @property
    def label(self) -> str:
        """`path#ordinal`, used in every user-visible message about the block."""
        return f"{self.document_path}#{self.ordinal}"


class Classification(BaseModel):
    """Classifier verdict for one block."""

    model_config = ConfigDict(frozen=True)

    strategy: Strategy
    toolchain: str | None = None
    build_only: bool = False
    skip_reason: str | None = None


class ExecutionResult(BaseModel):
    """Result of building and/or running one block in a scratch area."""

    model_config = ConfigDict(frozen=True)

    block: CodeBlock
    status: Status
    exit_code: int | None = Field(default=None, description="Exit code of the last step that ran")
    stdout: str = Field(default="", description="Captured stdout (bounded)")
    stderr: str = Field(default="", description="Captured stderr (bounded)")
    truncated: bool = Field(default=False, description="Output exceeded the capture bound")
    timed_out: bool = False
    duration_seconds: float = Field(default=0.0, ge=0.0, description="Wall-clock time for all steps")
    reason: str | None = Field(default=None, description="Why the block was skipped or failed early")

    @property
    def failed(self) -> bool:
        return self.status.failed


class DocumentIssue(BaseModel):
    """A per-document problem (malformed fence, unreadable file)."""

    model_config = ConfigDict(frozen=True)

    path: Path
    kind: str
    message: str
    ordinal: int | None = None
    line: int | None = None

    @classmethod
    def from_error(cls, error: DocumentError) -> "DocumentIssue":
        return cls(
            path=error.path,
            kind=error.kind,
            message=error.message,
            ordinal=error.context.get("ordinal"),
            line=error.context.get("line"),
        )
