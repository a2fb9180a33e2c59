"""Shared pytest fixtures for docsmoke tests."""

import os
import shutil
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from docsmoke.config import RunConfig
from docsmoke.models import CodeBlock
from docsmoke.settings import Settings
from docsmoke.toolchains import ToolchainRegistry

# ============================================================================
# Skip markers
# ============================================================================

skip_unless_cxx = pytest.mark.skipif(
    shutil.which("c++") is None,
    reason="Requires a C++ compiler (c++) on PATH",
)

skip_unless_bash = pytest.mark.skipif(
    shutil.which("bash") is None,
    reason="Requires bash on PATH",
)

skip_unless_posix = pytest.mark.skipif(
    sys.platform == "win32",
    reason="Requires POSIX process groups",
)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Settings isolated from the developer's DOCSMOKE_* environment."""
    for name in list(os.environ):
        if name.startswith("DOCSMOKE_"):
            monkeypatch.delenv(name)
    return Settings(python=sys.executable)


@pytest.fixture
def registry(settings: Settings) -> ToolchainRegistry:
    return ToolchainRegistry.from_settings(settings)


@pytest.fixture
def scratch_root(tmp_path: Path) -> Path:
    root = tmp_path / "scratch"
    root.mkdir()
    return root


@pytest.fixture
def run_config(scratch_root: Path) -> RunConfig:
    """Fast config with scratch areas under tmp_path."""
    return RunConfig(timeout_seconds=10, scratch_root=scratch_root)


@pytest.fixture
def write_md(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a Markdown document under tmp_path/docs and return its path."""
    docs = tmp_path / "docs"

    def _write(name: str, text: str) -> Path:
        path = docs / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


def make_block(
    source: str,
    language: str = "python",
    *,
    ordinal: int = 1,
    annotations: frozenset[str] = frozenset(),
    path: Path = Path("doc.md"),
) -> CodeBlock:
    """Build a CodeBlock without going through the extractor."""
    return CodeBlock(
        document_path=path,
        ordinal=ordinal,
        language=language,
        info=language,
        source=source,
        start_line=ordinal * 10,
        annotations=annotations,
    )
