"""Report building: deterministic ordering, counts and output formats.

Order is by document path, then block ordinal, so the report is identical
however the runner scheduled the blocks.
"""

from __future__ import annotations

import json
from collections import Counter
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import click
from pydantic import BaseModel, ConfigDict, Field

from docsmoke.models import DocumentIssue, ExecutionResult, Status

_STATUS_COLORS: dict[Status, str] = {
    Status.RAN_OK: "green",
    Status.COMPILED: "green",
    Status.SKIPPED: "yellow",
    Status.COMPILE_FAILED: "red",
    Status.RAN_FAILED: "red",
}

_EXCERPT_LINES = 12


class DocumentReport(BaseModel):
    """Everything recorded for one document."""

    model_config = ConfigDict(frozen=True)

    path: Path
    results: tuple[ExecutionResult, ...] = ()
    issues: tuple[DocumentIssue, ...] = ()
    prose_only: int = Field(default=0, ge=0, description="Blocks classified prose-only (no result)")


class RunReport(BaseModel):
    """Summary of one docsmoke run."""

    model_config = ConfigDict(frozen=True)

    documents: tuple[DocumentReport, ...] = ()
    strict: bool = False

    @property
    def results(self) -> list[ExecutionResult]:
        return [result for doc in self.documents for result in doc.results]

    @property
    def issues(self) -> list[DocumentIssue]:
        return [issue for doc in self.documents for issue in doc.issues]

    @property
    def counts(self) -> dict[str, int]:
        """Blocks per status, plus prose-only and document issues."""
        tally = Counter(result.status.value for result in self.results)
        counts = {status.value: tally.get(status.value, 0) for status in Status}
        counts["prose-only"] = sum(doc.prose_only for doc in self.documents)
        counts["document-errors"] = len(self.issues)
        return counts

    @property
    def failures(self) -> list[ExecutionResult]:
        return [result for result in self.results if result.failed]

    @property
    def passed(self) -> bool:
        """Skipped and prose-only blocks never affect the outcome."""
        if self.failures:
            return False
        return not (self.strict and self.issues)

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1


def build_report(
    results: Iterable[ExecutionResult],
    issues: Iterable[DocumentIssue] = (),
    *,
    documents: Iterable[Path] = (),
    prose_only: Mapping[Path, int] | None = None,
    strict: bool = False,
) -> RunReport:
    """Group results and issues by document, ordered by path then ordinal.

    Args:
        results: Execution results in any order
        issues: Per-document problems
        documents: Documents to list even when nothing was recorded for them
        prose_only: Prose-only block count per document
        strict: Document issues count as failures
    """
    prose_only = prose_only or {}
    by_path: dict[Path, list[ExecutionResult]] = {}
    issues_by_path: dict[Path, list[DocumentIssue]] = {}

    for result in results:
        by_path.setdefault(result.block.document_path, []).append(result)
    for issue in issues:
        issues_by_path.setdefault(issue.path, []).append(issue)

    paths = set(documents) | set(by_path) | set(issues_by_path) | set(prose_only)
    reports = []
    for path in sorted(paths, key=lambda p: p.as_posix()):
        doc_results = sorted(by_path.get(path, []), key=lambda r: r.block.ordinal)
        ordinals = [r.block.ordinal for r in doc_results]
        if len(ordinals) != len(set(ordinals)):
            raise ValueError(f"{path}: more than one result for a block")
        doc_issues = sorted(issues_by_path.get(path, []), key=lambda i: (i.ordinal or 0, i.line or 0))
        reports.append(
            DocumentReport(
                path=path,
                results=tuple(doc_results),
                issues=tuple(doc_issues),
                prose_only=prose_only.get(path, 0),
            )
        )
    return RunReport(documents=tuple(reports), strict=strict)


# ============================================================================
# Human-readable output
# ============================================================================


def _excerpt(result: ExecutionResult) -> list[str]:
    text = (result.stderr or result.stdout).rstrip()
    if not text:
        return []
    lines = text.splitlines()
    shown = lines[-_EXCERPT_LINES:]
    if len(lines) > len(shown):
        shown.insert(0, f"... ({len(lines) - len(shown)} more lines)")
    return [f"      {line}" for line in shown]


def _result_line(result: ExecutionResult) -> str:
    block = result.block
    status = click.style(f"{result.status.value:<14}", fg=_STATUS_COLORS[result.status], bold=result.failed)
    lang = block.language or "-"
    line = f"  {status} #{block.ordinal} (line {block.start_line}) [{lang}]"
    if result.status is not Status.SKIPPED:
        line += f" {result.duration_seconds:.2f}s"
    if result.reason:
        line += f" - {result.reason}"
    if result.exit_code not in (None, 0):
        line += f" (exit {result.exit_code})"
    return line


def render_text(report: RunReport) -> str:
    """Render the summary shown on stdout."""
    lines: list[str] = []
    for doc in report.documents:
        lines.append(click.style(str(doc.path), bold=True))
        for issue in doc.issues:
            where = f" block {issue.ordinal}" if issue.ordinal is not None else ""
            lines.append(click.style(f"  error{where}: {issue.message}", fg="red"))
        for result in doc.results:
            lines.append(_result_line(result))
            if result.failed:
                lines.extend(_excerpt(result))
        if not doc.results and not doc.issues:
            lines.append(click.style("  no executable blocks", dim=True))

    counts = report.counts
    parts = [f"{counts[status.value]} {status.value}" for status in Status]
    parts.append(f"{counts['prose-only']} prose-only")
    if counts["document-errors"]:
        parts.append(f"{counts['document-errors']} document errors")
    verdict = click.style("PASSED", fg="green", bold=True) if report.passed else click.style("FAILED", fg="red", bold=True)
    lines.append("")
    lines.append(f"{verdict}: {', '.join(parts)}")
    return "\n".join(lines)


# ============================================================================
# Machine-readable output
# ============================================================================


def report_records(report: RunReport) -> list[dict[str, Any]]:
    """Records in report order: blocks and document errors, then a summary."""
    records: list[dict[str, Any]] = []
    for doc in report.documents:
        for result in doc.results:
            block = result.block
            records.append(
                {
                    "kind": "block",
                    "document": block.document_path.as_posix(),
                    "ordinal": block.ordinal,
                    "line": block.start_line,
                    "language": block.language,
                    "annotations": sorted(block.annotations),
                    "status": result.status.value,
                    "exit_code": result.exit_code,
                    "timed_out": result.timed_out,
                    "truncated": result.truncated,
                    "duration_seconds": round(result.duration_seconds, 6),
                    "reason": result.reason,
                    "stdout": result.stdout,
                    "stderr": result.stderr,
                }
            )
        for issue in doc.issues:
            records.append(
                {
                    "kind": "document-error",
                    "document": issue.path.as_posix(),
                    "ordinal": issue.ordinal,
                    "line": issue.line,
                    "error": issue.kind,
                    "message": issue.message,
                }
            )
    records.append({"kind": "summary", "counts": report.counts, "passed": report.passed, "exit_code": report.exit_code})
    return records


def write_jsonl(report: RunReport, path: Path) -> None:
    """Write the report as JSON Lines (one record per line)."""
    with path.open("w", encoding="utf-8") as f:
        for record in report_records(report):
            f.write(json.dumps(record, ensure_ascii=False))
            f.write("\n")
