"""Tests for the docsmoke command line.

Invoked in-process with click's CliRunner. Only python blocks execute.
"""

import json
from collections.abc import Callable
from pathlib import Path

import click
import pytest
from click.testing import CliRunner, Result

from docsmoke.cli import EXIT_FAILURE, EXIT_SUCCESS, EXIT_USAGE_ERROR, main

WriteMd = Callable[[str, str], Path]


@pytest.fixture
def cli(scratch_root: Path, settings) -> Callable[..., Result]:
    runner = CliRunner()

    def invoke(*args: str | Path, env: dict[str, str] | None = None) -> Result:
        return runner.invoke(
            main, [str(a) for a in args], env={"DOCSMOKE_SCRATCH_ROOT": str(scratch_root), **(env or {})}
        )

    return invoke


# ============================================================================
# Exit Codes
# ============================================================================


class TestExitCodes:
    def test_passing_document(self, cli, write_md: WriteMd) -> None:
        path = write_md("ok.md", "```python\nprint('hi')\n```\n\n```cpp docsmoke:ub\nint x = *(int*)0;\n```\n")
        result = cli(path)
        assert result.exit_code == EXIT_SUCCESS, result.output
        output = click.unstyle(result.output)
        assert "ran-ok" in output
        assert "PASSED" in output
        assert "1 prose-only" in output

    def test_failing_block(self, cli, write_md: WriteMd) -> None:
        path = write_md("bad.md", "```python\nraise SystemExit(5)\n```\n")
        result = cli(path)
        assert result.exit_code == EXIT_FAILURE
        assert "FAILED" in click.unstyle(result.output)

    def test_no_paths_is_usage_error(self, cli) -> None:
        result = cli()
        assert result.exit_code == EXIT_USAGE_ERROR
        assert "No input provided" in result.output

    def test_missing_path_is_usage_error(self, cli, tmp_path: Path) -> None:
        result = cli(tmp_path / "nope.md")
        assert result.exit_code == EXIT_USAGE_ERROR
        assert "does not exist" in result.output

    @pytest.mark.parametrize(("option", "value"), [("-t", "0"), ("-j", "0"), ("--output-limit", "10")])
    def test_invalid_option_is_usage_error(self, cli, write_md: WriteMd, option: str, value: str) -> None:
        result = cli(option, value, write_md("a.md", ""))
        assert result.exit_code == EXIT_USAGE_ERROR

    @pytest.mark.parametrize(
        ("name", "value"), [("DOCSMOKE_MAX_WORKERS", "abc"), ("DOCSMOKE_TIMEOUT_SECONDS", "soon")]
    )
    def test_invalid_environment_is_usage_error(self, cli, write_md: WriteMd, name: str, value: str) -> None:
        result = cli(write_md("a.md", ""), env={name: value})
        assert result.exit_code == EXIT_USAGE_ERROR
        assert "Traceback" not in result.output

    def test_malformed_document_does_not_fail_by_default(self, cli, write_md: WriteMd) -> None:
        write_md("a.md", "```python\nprint(1)\n```\n")
        path = write_md("b.md", "```python\nprint(2)\n")
        assert cli(path.parent).exit_code == EXIT_SUCCESS
        assert cli("--strict", path.parent).exit_code == EXIT_FAILURE


# ============================================================================
# Options
# ============================================================================


class TestOptions:
    def test_jsonl_output(self, cli, write_md: WriteMd, tmp_path: Path) -> None:
        path = write_md("a.md", "```python\nprint('x')\n```\n```python\nraise SystemExit(1)\n```\n")
        out = tmp_path / "report.jsonl"
        result = cli("-j", "2", "-o", out, path)
        assert result.exit_code == EXIT_FAILURE

        records = [json.loads(line) for line in out.read_text(encoding="utf-8").splitlines()]
        assert [r["kind"] for r in records] == ["block", "block", "summary"]
        assert [r["status"] for r in records[:2]] == ["ran-ok", "ran-failed"]
        assert records[-1]["exit_code"] == EXIT_FAILURE

    def test_language_filter(self, cli, write_md: WriteMd) -> None:
        path = write_md("a.md", "```python\nraise SystemExit(1)\n```\n")
        result = cli("-l", "cpp", path)
        assert result.exit_code == EXIT_SUCCESS
        assert "language python not selected" in click.unstyle(result.output)

    def test_list_runs_nothing(self, cli, write_md: WriteMd, scratch_root: Path) -> None:
        path = write_md("a.md", "```python\nraise SystemExit(1)\n```\n```text\nhi\n```\n")
        result = cli("--list", path)
        assert result.exit_code == EXIT_SUCCESS
        lines = [line for line in result.output.splitlines() if "a.md#" in line]
        assert lines[0].endswith("compilable (python)")
        assert lines[1].endswith("prose-only")
        assert list(scratch_root.iterdir()) == []

    def test_version(self, cli) -> None:
        result = cli("--version")
        assert result.exit_code == 0
        assert "docsmoke" in result.output
