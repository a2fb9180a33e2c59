"""docsmoke: smoke-test the code examples in Markdown documentation.

Extracts fenced code blocks, classifies them by language tag and
annotations, builds and runs the runnable ones in throwaway scratch
directories, and reports a deterministic pass/fail summary.

Quick Start:
    ```python
    import asyncio
    from pathlib import Path

    from docsmoke import RunConfig, check_documents

    report = asyncio.run(check_documents([Path("docs")], RunConfig(max_workers=4)))
    print(report.counts)
    ```

Single block:
    ```python
    from docsmoke import Document, SandboxRunner, ToolchainRegistry, classify, extract_blocks

    registry = ToolchainRegistry.from_settings()
    runner = SandboxRunner(registry=registry)
    for block in extract_blocks(Document.load(Path("guide.md"))):
        result = await runner.run(block, classify(block, registry))
    ```
"""

from docsmoke.classifier import classify
from docsmoke.config import RunConfig
from docsmoke.exceptions import (
    DocSmokeError,
    DocumentError,
    DocumentLoadError,
    MalformedBlockError,
    ScratchError,
    ToolchainUnavailableError,
    UsageError,
)
from docsmoke.extractor import BlockSequence, extract_blocks
from docsmoke.models import (
    Classification,
    CodeBlock,
    Document,
    DocumentIssue,
    ExecutionResult,
    Status,
    Strategy,
)
from docsmoke.pipeline import check_documents, collect_markdown_files
from docsmoke.report import RunReport, build_report, render_text, write_jsonl
from docsmoke.runner import SandboxRunner
from docsmoke.settings import Settings
from docsmoke.toolchains import Toolchain, ToolchainRegistry

__all__ = [
    "BlockSequence",
    "Classification",
    "CodeBlock",
    "DocSmokeError",
    "Document",
    "DocumentError",
    "DocumentIssue",
    "DocumentLoadError",
    "ExecutionResult",
    "MalformedBlockError",
    "RunConfig",
    "RunReport",
    "SandboxRunner",
    "ScratchError",
    "Settings",
    "Status",
    "Strategy",
    "Toolchain",
    "ToolchainRegistry",
    "ToolchainUnavailableError",
    "UsageError",
    "build_report",
    "check_documents",
    "classify",
    "collect_markdown_files",
    "extract_blocks",
    "render_text",
    "write_jsonl",
]

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("docsmoke")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"
