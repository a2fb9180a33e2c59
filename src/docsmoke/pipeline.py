"""End-to-end pipeline: discover → load → extract → classify → run → report.

Errors are isolated per document: a file that cannot be read or ends inside
a fence is reported, and every other document is still processed.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from docsmoke import constants
from docsmoke._logging import get_logger
from docsmoke.classifier import classify
from docsmoke.config import RunConfig
from docsmoke.exceptions import DocumentError, UsageError
from docsmoke.extractor import extract_blocks
from docsmoke.models import Classification, CodeBlock, Document, DocumentIssue, Strategy
from docsmoke.report import RunReport, build_report
from docsmoke.runner import SandboxRunner
from docsmoke.toolchains import ToolchainRegistry

logger = get_logger(__name__)


def collect_markdown_files(paths: Iterable[Path]) -> list[Path]:
    """Expand the input paths into a sorted, de-duplicated list of documents.

    Files are taken as given. Directories are scanned recursively for
    *.md and *.markdown files.

    Raises:
        UsageError: A path does not exist, or no paths were given
    """
    found: set[Path] = set()
    given = list(paths)
    if not given:
        raise UsageError("no input paths given")

    for path in given:
        if path.is_file():
            found.add(path)
        elif path.is_dir():
            for candidate in path.rglob("*"):
                if candidate.suffix.lower() in constants.MARKDOWN_SUFFIXES and candidate.is_file():
                    found.add(candidate)
        else:
            raise UsageError(f"path does not exist: {path}", {"path": str(path)})

    return sorted(found, key=lambda p: p.as_posix())


@dataclass
class ExtractedDocument:
    """Blocks of one document with their classifications."""

    path: Path
    blocks: list[tuple[CodeBlock, Classification]] = field(default_factory=list)
    issues: list[DocumentIssue] = field(default_factory=list)

    @property
    def executable(self) -> list[tuple[CodeBlock, Classification]]:
        return [(b, c) for b, c in self.blocks if c.strategy is not Strategy.PROSE_ONLY]

    @property
    def prose_only(self) -> int:
        return sum(1 for _, c in self.blocks if c.strategy is Strategy.PROSE_ONLY)


def extract_document(path: Path, registry: ToolchainRegistry, config: RunConfig) -> ExtractedDocument:
    """Load, extract and classify one document, capturing document errors."""
    extracted = ExtractedDocument(path=path)
    try:
        document = Document.load(path)
        for block in extract_blocks(document):
            extracted.blocks.append((block, _classify(block, registry, config)))
    except DocumentError as e:
        logger.warning(e.message, extra={"context_id": str(path), **e.context})
        extracted.issues.append(DocumentIssue.from_error(e))
    return extracted


def _classify(block: CodeBlock, registry: ToolchainRegistry, config: RunConfig) -> Classification:
    """Classify, then skip blocks excluded by the language filter (tag or toolchain name)."""
    classification = classify(block, registry)
    if (
        config.languages
        and classification.strategy is Strategy.COMPILABLE
        and classification.skip_reason is None
        and block.language not in config.languages
        and classification.toolchain not in config.languages
    ):
        return classification.model_copy(update={"skip_reason": f"language {block.language} not selected"})
    return classification


async def check_documents(
    paths: Sequence[Path],
    config: RunConfig | None = None,
    registry: ToolchainRegistry | None = None,
) -> RunReport:
    """Run the whole pipeline over the given files/directories.

    Raises:
        UsageError: Input paths are invalid (nothing is processed)
    """
    config = config or RunConfig()
    registry = registry or ToolchainRegistry.from_settings()
    files = collect_markdown_files(paths)
    logger.info(f"Checking {len(files)} documents", extra={"documents": len(files)})

    extracted = [extract_document(path, registry, config) for path in files]
    runner = SandboxRunner(config, registry)
    results = await runner.run_many([item for doc in extracted for item in doc.executable])

    return build_report(
        results,
        [issue for doc in extracted for issue in doc.issues],
        documents=files,
        prose_only={doc.path: doc.prose_only for doc in extracted},
        strict=config.strict,
    )
