"""Command-line interface for docsmoke.

Usage:
    docsmoke docs/                          # Scan a directory for *.md
    docsmoke README.md guide.md -o out.jsonl
    docsmoke -j 4 -t 20 -l cpp docs/        # Only C++ blocks, 4 at a time
    docsmoke --list docs/                   # Show blocks and classifications
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from pydantic import ValidationError

from docsmoke import RunConfig, Settings, __version__
from docsmoke._logging import configure_logging
from docsmoke.exceptions import UsageError
from docsmoke.models import Strategy
from docsmoke.pipeline import check_documents, collect_markdown_files, extract_document
from docsmoke.report import render_text, write_jsonl
from docsmoke.toolchains import ToolchainRegistry

# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_USAGE_ERROR = 2


def format_error(title: str, message: str, suggestions: list[str] | None = None) -> str:
    """Format an error message following What → Why → Fix pattern.

    Args:
        title: Short error title
        message: Detailed explanation
        suggestions: Optional list of suggestions to fix the issue

    Returns:
        Formatted error string
    """
    lines = [
        click.style(f"Error: {title}", fg="red", bold=True),
        "",
        f"  {message}",
    ]

    if suggestions:
        lines.extend(["", "  Suggestions:"])
        lines.extend(f"    • {suggestion}" for suggestion in suggestions)

    return "\n".join(lines)


def format_validation_error(exc: ValidationError) -> str:
    """Collapse pydantic errors into one line per invalid option."""
    return "; ".join(f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in exc.errors())


def list_blocks(paths: list[Path], config: RunConfig, registry: ToolchainRegistry) -> int:
    """Print every block with its classification; nothing is executed."""
    for path in collect_markdown_files(paths):
        extracted = extract_document(path, registry, config)
        for block, classification in extracted.blocks:
            detail = classification.strategy.value
            if classification.strategy is Strategy.COMPILABLE:
                detail += f" ({classification.toolchain}"
                detail += ", build-only)" if classification.build_only else ")"
            if classification.skip_reason:
                detail += f" - skipped: {classification.skip_reason}"
            click.echo(f"{block.label}\tline {block.start_line}\t[{block.language or '-'}]\t{detail}")
        for issue in extracted.issues:
            click.echo(click.style(f"{issue.message}", fg="red"), err=True)
    return EXIT_SUCCESS


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("paths", nargs=-1, type=click.Path(path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Write a JSON Lines report (one record per block) to this file",
)
@click.option("-t", "--timeout", type=float, help="Timeout per build/run step in seconds [default: 10]")
@click.option("-j", "--jobs", type=int, help="Blocks executed concurrently [default: 1]")
@click.option("--output-limit", type=int, help="Captured bytes per output stream [default: 4096]")
@click.option("-l", "--language", "languages", multiple=True, help="Only execute blocks with this tag (repeatable)")
@click.option("--strict", is_flag=True, help="Treat malformed or unreadable documents as failures")
@click.option("--list", "list_only", is_flag=True, help="List blocks and their classification, run nothing")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
@click.option("-q", "--quiet", is_flag=True, help="Only log errors")
@click.version_option(__version__, "-V", "--version", prog_name="docsmoke")
def main(
    paths: tuple[Path, ...],
    output: Path | None,
    timeout: float | None,
    jobs: int | None,
    output_limit: int | None,
    languages: tuple[str, ...],
    strict: bool,
    list_only: bool,
    verbose: bool,
    quiet: bool,
) -> NoReturn:
    """Extract fenced code blocks from Markdown and smoke-test them.

    PATHS are Markdown files or directories (scanned recursively for *.md).

    Blocks are built and run in throwaway scratch directories. Annotate a
    block to change how it is treated:

    \b
      ```cpp docsmoke:ub              never executed (also: compile-error, bug, prose)
      ```python docsmoke:skip         recorded as skipped
      ```cpp docsmoke:compile-only    built but not run
      <!-- docsmoke: ub -->           same, as the last non-blank line before the fence

    Exit status: 0 all executed blocks passed, 1 a block failed, 2 usage error.
    """
    configure_logging(level=logging.DEBUG if verbose else None, quiet=quiet)

    if not paths:
        raise click.UsageError("No input provided. Pass Markdown files or directories.")

    try:
        settings = Settings()
        config = RunConfig.from_settings(
            settings,
            timeout_seconds=timeout,
            max_workers=jobs,
            output_limit_bytes=output_limit,
            languages=languages or None,
            strict=strict,
        )
    except ValidationError as exc:
        raise click.UsageError(format_validation_error(exc)) from exc

    registry = ToolchainRegistry.from_settings(settings)

    try:
        if list_only:
            sys.exit(list_blocks(list(paths), config, registry))
        report = asyncio.run(check_documents(list(paths), config, registry))
    except UsageError as exc:
        raise click.UsageError(exc.message) from exc

    click.echo(render_text(report))

    if output is not None:
        try:
            write_jsonl(report, output)
        except OSError as exc:
            click.echo(format_error("Cannot write report", str(exc), ["Check the --output path"]), err=True)
            sys.exit(EXIT_USAGE_ERROR)

    sys.exit(report.exit_code)


if __name__ == "__main__":
    main()
