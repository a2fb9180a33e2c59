"""Tests for run_command and BoundedBuffer."""

import sys
from pathlib import Path

import pytest

from docsmoke.subprocess_utils import BoundedBuffer, run_command
from tests.conftest import skip_unless_posix

# ============================================================================
# BoundedBuffer
# ============================================================================


class TestBoundedBuffer:
    def test_keeps_prefix(self) -> None:
        buffer = BoundedBuffer(limit=4)
        buffer.feed(b"ab")
        buffer.feed(b"cdef")
        buffer.feed(b"gh")
        assert buffer.text() == "abcd"
        assert buffer.total == 8
        assert buffer.truncated is True

    def test_exact_fit_is_not_truncated(self) -> None:
        buffer = BoundedBuffer(limit=3)
        buffer.feed(b"abc")
        assert buffer.truncated is False

    def test_invalid_utf8_replaced(self) -> None:
        buffer = BoundedBuffer(limit=16)
        buffer.feed(b"ok \xff")
        assert buffer.text() == "ok �"

    @pytest.mark.parametrize(
        ("limit", "expected"),
        [(1, "a"), (2, "a"), (3, "aé"), (4, "aé"), (5, "aé"), (6, "aé€")],
    )
    def test_cut_never_splits_a_character(self, limit: int, expected: str) -> None:
        buffer = BoundedBuffer(limit=limit)
        buffer.feed("aé€!".encode())
        assert buffer.truncated is True
        assert buffer.text() == expected

    def test_four_byte_character_cut(self) -> None:
        buffer = BoundedBuffer(limit=3)
        buffer.feed("🐍 snake".encode())
        assert buffer.text() == ""


# ============================================================================
# run_command
# ============================================================================


class TestRunCommand:
    async def test_captures_both_streams(self, tmp_path: Path) -> None:
        outcome = await run_command(
            [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr); sys.exit(2)"],
            cwd=tmp_path,
            timeout=10,
            output_limit=1024,
        )
        assert outcome.exit_code == 2
        assert outcome.stdout == "out\n"
        assert outcome.stderr == "err\n"
        assert outcome.ok is False
        assert outcome.timed_out is False

    async def test_large_output_does_not_deadlock(self, tmp_path: Path) -> None:
        outcome = await run_command(
            [sys.executable, "-c", "import sys; sys.stdout.write('x' * 1_000_000)"],
            cwd=tmp_path,
            timeout=10,
            output_limit=512,
        )
        assert outcome.ok is True
        assert outcome.truncated is True
        assert len(outcome.stdout) == 512

    @skip_unless_posix
    async def test_timeout_keeps_partial_output(self, tmp_path: Path) -> None:
        outcome = await run_command(
            [sys.executable, "-c", "import time; print('partial', flush=True); time.sleep(60)"],
            cwd=tmp_path,
            timeout=1,
            output_limit=1024,
        )
        assert outcome.timed_out is True
        assert outcome.ok is False
        assert outcome.stdout == "partial\n"
        assert outcome.duration_seconds < 30

    async def test_missing_executable_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            await run_command([str(tmp_path / "missing")], cwd=tmp_path, timeout=5, output_limit=256)

    async def test_stdin_is_closed(self, tmp_path: Path) -> None:
        outcome = await run_command(
            [sys.executable, "-c", "import sys; print(repr(sys.stdin.read()))"],
            cwd=tmp_path,
            timeout=10,
            output_limit=256,
        )
        assert outcome.stdout == "''\n"
