"""Fenced code block extraction from Markdown.

Fence rules follow CommonMark where it matters for documentation:
- an opening fence is a run of >= 3 backticks or tildes, optionally indented
- a closing fence uses the same character, is at least as long as the
  opening run and has nothing but whitespace after it
- a backtick fence whose info string contains a backtick is not a fence

Fences nested inside list items are indented; the opening fence's
indentation is stripped from every content line.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

from docsmoke import constants
from docsmoke._logging import get_logger
from docsmoke.exceptions import MalformedBlockError
from docsmoke.models import CodeBlock, Document

logger = get_logger(__name__)

_OPEN_FENCE = re.compile(r"^(?P<indent>[ \t]*)(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_ANNOTATION_COMMENT = re.compile(r"^\s*<!--\s*docsmoke:\s*(?P<names>.*?)\s*-->\s*$")


@dataclass(frozen=True)
class _Fence:
    indent: str
    char: str
    length: int
    info: str
    line: int

    def closes(self, line: str) -> bool:
        stripped = line.strip()
        if not stripped or stripped[0] != self.char:
            return False
        run = len(stripped) - len(stripped.lstrip(self.char))
        return run >= self.length and not stripped[run:].strip()


def _match_open_fence(line: str, lineno: int) -> _Fence | None:
    match = _OPEN_FENCE.match(line)
    if match is None:
        return None
    fence = match.group("fence")
    info = match.group("info").strip()
    if fence[0] == "`" and "`" in info:
        return None  # inline code span, not a fence
    return _Fence(indent=match.group("indent"), char=fence[0], length=len(fence), info=info, line=lineno)


def normalize_language(info: str) -> str:
    """Return the language tag of an info string.

    >>> normalize_language("C++ docsmoke:ub")
    'c++'
    >>> normalize_language("{.python .numberLines}")
    'python'
    >>> normalize_language("rust,ignore")
    'rust'
    """
    tokens = info.split()
    if not tokens or tokens[0].startswith(constants.ANNOTATION_PREFIX):
        return ""
    tag = tokens[0]
    if tag.startswith("{"):
        tag = tag.lstrip("{").rstrip("}").lstrip(".")
    return tag.split(",", 1)[0].lower()


def parse_annotations(info: str, preceding: str | None = None) -> frozenset[str]:
    """Collect annotation names from the info string and a preceding HTML comment.

    Info-string form:  ```cpp docsmoke:ub
    Comment form:      <!-- docsmoke: ub compile-only -->
    """
    names: set[str] = set()
    for token in info.replace(",", " ").split():
        if token.startswith(constants.ANNOTATION_PREFIX):
            names.add(token[len(constants.ANNOTATION_PREFIX) :].lower())
    if preceding is not None and (match := _ANNOTATION_COMMENT.match(preceding)):
        names.update(name.lower() for name in match.group("names").replace(",", " ").split())
    names.discard("")
    unknown = names - constants.KNOWN_ANNOTATIONS
    if unknown:
        logger.warning(
            f"Ignoring unknown annotations: {', '.join(sorted(unknown))}",
            extra={"annotations": sorted(unknown)},
        )
    return frozenset(names & constants.KNOWN_ANNOTATIONS)


def _strip_up_to(line: str, width: int) -> str:
    """Strip at most `width` leading whitespace characters."""
    i = 0
    while i < width and i < len(line) and line[i] in " \t":
        i += 1
    return line[i:]


class BlockSequence:
    """Lazy, restartable sequence of a document's code blocks.

    Each iteration rescans the document text, so iterating twice yields
    equal blocks in the same order. Iteration raises MalformedBlockError
    after the last complete block when the document ends inside a fence.
    """

    def __init__(self, document: Document) -> None:
        self._document = document

    @property
    def document(self) -> Document:
        return self._document

    def __iter__(self) -> Iterator[CodeBlock]:
        return self._scan()

    def _scan(self) -> Iterator[CodeBlock]:
        path = self._document.path
        open_fence: _Fence | None = None
        body: list[str] = []
        preceding: str | None = None
        annotations: frozenset[str] = frozenset()
        ordinal = 0

        for lineno, line in enumerate(self._document.text.splitlines(), start=1):
            if open_fence is None:
                fence = _match_open_fence(line, lineno)
                if fence is None:
                    if line.strip():
                        preceding = line
                    continue
                open_fence = fence
                annotations = parse_annotations(fence.info, preceding)
                body = []
                ordinal += 1
                continue

            if open_fence.closes(line):
                yield CodeBlock(
                    document_path=path,
                    ordinal=ordinal,
                    language=normalize_language(open_fence.info),
                    info=open_fence.info,
                    source="".join(f"{text}\n" for text in body),
                    start_line=open_fence.line,
                    annotations=annotations,
                )
                open_fence = None
                preceding = None
                continue

            body.append(_strip_up_to(line, len(open_fence.indent)))

        if open_fence is not None:
            raise MalformedBlockError(path, ordinal, open_fence.line)


def extract_blocks(document: Document) -> BlockSequence:
    """Return the document's fenced code blocks as a restartable sequence."""
    return BlockSequence(document)
