"""Constants for docsmoke limits and annotation vocabulary."""

from typing import Final

# ============================================================================
# Execution Limits
# ============================================================================

DEFAULT_TIMEOUT_SECONDS: Final[float] = 10.0
"""Default timeout for each build or run step of a block."""

MAX_TIMEOUT_SECONDS: Final[float] = 300.0
"""Maximum per-step timeout (5 minutes)."""

DEFAULT_OUTPUT_LIMIT_BYTES: Final[int] = 4096
"""Captured stdout/stderr bound per stream; the rest is discarded."""

MIN_OUTPUT_LIMIT_BYTES: Final[int] = 256

DEFAULT_MAX_WORKERS: Final[int] = 1
"""Blocks run one at a time unless a larger pool is requested."""

MAX_WORKERS: Final[int] = 64

READ_CHUNK_BYTES: Final[int] = 8192

KILL_WAIT_SECONDS: Final[float] = 5.0
"""How long to wait for a killed process tree to be reaped."""

LEADER_POLL_SECONDS: Final[float] = 0.02
"""Interval for checking whether a step's top-level process has exited."""

# ============================================================================
# Scratch Area
# ============================================================================

SCRATCH_PREFIX: Final[str] = "docsmoke-"
SNIPPET_STEM: Final[str] = "snippet"

# ============================================================================
# Input Discovery
# ============================================================================

MARKDOWN_SUFFIXES: Final[tuple[str, ...]] = (".md", ".markdown")

# ============================================================================
# Annotations
# ============================================================================

ANNOTATION_PREFIX: Final[str] = "docsmoke:"

ANNOTATION_UB: Final[str] = "ub"
ANNOTATION_COMPILE_ERROR: Final[str] = "compile-error"
ANNOTATION_BUG: Final[str] = "bug"
ANNOTATION_PROSE: Final[str] = "prose"
ANNOTATION_SKIP: Final[str] = "skip"
ANNOTATION_COMPILE_ONLY: Final[str] = "compile-only"

PROSE_ANNOTATIONS: Final[frozenset[str]] = frozenset(
    {ANNOTATION_UB, ANNOTATION_COMPILE_ERROR, ANNOTATION_BUG, ANNOTATION_PROSE}
)
"""Blocks that deliberately show broken code; never executed, never failures."""

KNOWN_ANNOTATIONS: Final[frozenset[str]] = PROSE_ANNOTATIONS | {ANNOTATION_SKIP, ANNOTATION_COMPILE_ONLY}

# ============================================================================
# Classification
# ============================================================================

TRANSCRIPT_TAGS: Final[frozenset[str]] = frozenset(
    {"console", "shell-session", "sh-session", "terminal", "pycon"}
)

SHELL_PROMPTS: Final[tuple[str, ...]] = ("$ ", "% ")
PYTHON_PROMPT: Final[str] = ">>> "
