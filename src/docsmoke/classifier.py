"""Block classification: decide how (and whether) a code block is executed.

Unknown tags default to prose-only so unrecognized content is never run.
Blocks that deliberately show broken code are flagged with an explicit
annotation (see constants.PROSE_ANNOTATIONS); informal prose markers such
as "UB!" or "DANGER" are not detected.
"""

import re

from docsmoke import constants
from docsmoke.models import Classification, CodeBlock, Strategy
from docsmoke.toolchains import ToolchainRegistry

_MAIN_FUNCTION = re.compile(r"\bmain\s*\(")

_SHELL_TAGS = frozenset({"bash", "sh", "shell", "zsh"})
_PYTHON_TAGS = frozenset({"python", "py", "python3"})

PROSE_ONLY = Classification(strategy=Strategy.PROSE_ONLY)


def _first_code_line(source: str) -> str:
    for line in source.splitlines():
        if line.strip():
            return line.lstrip()
    return ""


def is_transcript(block: CodeBlock) -> bool:
    """True for terminal/REPL sessions rather than source code."""
    if block.language in constants.TRANSCRIPT_TAGS:
        return True
    first = _first_code_line(block.source)
    if block.language in _SHELL_TAGS:
        return first.startswith(constants.SHELL_PROMPTS)
    if block.language in _PYTHON_TAGS:
        return first.startswith(constants.PYTHON_PROMPT)
    return False


def classify(block: CodeBlock, registry: ToolchainRegistry) -> Classification:
    """Classify one block.

    Rules, first match wins:
        1. prose annotations (ub, compile-error, bug, prose) → prose-only
        2. blank content → prose-only
        3. terminal/REPL transcript → shell-transcript
        4. no toolchain for the tag → prose-only
        5. skip annotation → compilable, skipped
        6. toolchain not installed → compilable, skipped
        7. compile-only annotation, or C/C++ without main() → build only
        8. otherwise → build and run
    """
    if block.annotations & constants.PROSE_ANNOTATIONS:
        return PROSE_ONLY
    if not block.source.strip():
        return PROSE_ONLY
    if is_transcript(block):
        return Classification(strategy=Strategy.SHELL_TRANSCRIPT, skip_reason="shell transcript")

    toolchain = registry.for_tag(block.language) if block.language else None
    if toolchain is None:
        return PROSE_ONLY

    if constants.ANNOTATION_SKIP in block.annotations:
        return Classification(strategy=Strategy.COMPILABLE, toolchain=toolchain.name, skip_reason="annotated skip")
    if not registry.is_available(toolchain):
        return Classification(
            strategy=Strategy.COMPILABLE,
            toolchain=toolchain.name,
            skip_reason=f"toolchain {toolchain.name} unavailable",
        )

    build_only = constants.ANNOTATION_COMPILE_ONLY in block.annotations or (
        toolchain.needs_main and not _MAIN_FUNCTION.search(block.source)
    )
    return Classification(strategy=Strategy.COMPILABLE, toolchain=toolchain.name, build_only=build_only)
