"""Toolchain table and availability probes.

A toolchain turns a snippet file into something runnable. Every toolchain
has a build step (compile, or a syntax check for interpreted languages) so
that a deliberate syntax error always reports as compile-failed, and an
optional run step.

Command templates are lists of arguments; the placeholders {source},
{binary} and {object} are replaced with paths inside the scratch area.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from docsmoke import constants
from docsmoke._logging import get_logger
from docsmoke.settings import Settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class Toolchain:
    """How to build and run snippets of one language family.

    Attributes:
        name: Toolchain identifier (e.g. "cpp")
        tags: Language tags served by this toolchain
        suffix: Scratch file suffix (compilers dispatch on it)
        binary: Executable that must be installed for the toolchain to be usable
        build: Build command template (full build, linked when applicable)
        run: Run command template, or None when there is nothing to run
        build_only: Command used when only compilation is wanted. Falls back
            to `build` when None.
    """

    name: str
    tags: frozenset[str]
    suffix: str
    binary: str
    build: tuple[str, ...]
    run: tuple[str, ...] | None
    build_only: tuple[str, ...] | None = None
    needs_main: bool = False
    """Snippets without an entry point are only compiled (C/C++)."""

    @property
    def source_name(self) -> str:
        return f"{constants.SNIPPET_STEM}{self.suffix}"

    def paths(self, scratch: Path) -> dict[str, str]:
        stem = scratch / constants.SNIPPET_STEM
        return {
            "source": str(scratch / self.source_name),
            "binary": str(stem),
            "object": str(stem.with_suffix(".o")),
        }

    def build_command(self, scratch: Path, *, build_only: bool = False) -> list[str]:
        template = self.build_only if build_only and self.build_only is not None else self.build
        return _render(template, self.paths(scratch))

    def run_command(self, scratch: Path) -> list[str] | None:
        if self.run is None:
            return None
        return _render(self.run, self.paths(scratch))


def _render(template: Sequence[str], values: dict[str, str]) -> list[str]:
    return [part.format(**values) for part in template]


def default_toolchains(settings: Settings) -> list[Toolchain]:
    """Built-in toolchains, with binaries and flags taken from settings."""
    return [
        Toolchain(
            name="python",
            tags=frozenset({"python", "py", "python3"}),
            suffix=".py",
            binary=settings.python,
            build=(settings.python, "-m", "py_compile", "{source}"),
            run=(settings.python, "{source}"),
        ),
        Toolchain(
            name="cpp",
            tags=frozenset({"cpp", "c++", "cxx", "cc"}),
            suffix=".cpp",
            binary=settings.cxx,
            build=(settings.cxx, *settings.cxx_flags, "{source}", "-o", "{binary}", *settings.link_flags),
            run=("{binary}",),
            build_only=(settings.cxx, *settings.cxx_flags, "-c", "{source}", "-o", "{object}"),
            needs_main=True,
        ),
        Toolchain(
            name="c",
            tags=frozenset({"c"}),
            suffix=".c",
            binary=settings.cc,
            build=(settings.cc, *settings.c_flags, "{source}", "-o", "{binary}", *settings.link_flags),
            run=("{binary}",),
            build_only=(settings.cc, *settings.c_flags, "-c", "{source}", "-o", "{object}"),
            needs_main=True,
        ),
        Toolchain(
            name="bash",
            tags=frozenset({"bash", "sh", "shell", "zsh"}),
            suffix=".sh",
            binary=settings.bash,
            build=(settings.bash, "-n", "{source}"),
            run=(settings.bash, "{source}"),
        ),
        Toolchain(
            name="javascript",
            tags=frozenset({"javascript", "js", "node", "mjs"}),
            suffix=".js",
            binary=settings.node,
            build=(settings.node, "--check", "{source}"),
            run=(settings.node, "{source}"),
        ),
    ]


@dataclass
class ToolchainRegistry:
    """Maps language tags to toolchains and caches availability probes."""

    toolchains: list[Toolchain]
    _by_tag: dict[str, Toolchain] = field(init=False, repr=False)
    _available: dict[str, bool] = field(init=False, repr=False, default_factory=dict)

    def __post_init__(self) -> None:
        self._by_tag = {}
        for toolchain in self.toolchains:
            for tag in toolchain.tags:
                self._by_tag[tag] = toolchain

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ToolchainRegistry:
        return cls(default_toolchains(settings or Settings()))

    def get(self, name: str) -> Toolchain:
        for toolchain in self.toolchains:
            if toolchain.name == name:
                return toolchain
        raise KeyError(name)

    def for_tag(self, tag: str) -> Toolchain | None:
        return self._by_tag.get(tag.lower())

    @property
    def tags(self) -> frozenset[str]:
        return frozenset(self._by_tag)

    def is_available(self, toolchain: Toolchain) -> bool:
        """Probe once per toolchain whether its binary is installed."""
        cached = self._available.get(toolchain.name)
        if cached is not None:
            return cached
        available = shutil.which(toolchain.binary) is not None
        if not available:
            logger.info(
                f"Toolchain {toolchain.name} unavailable, its blocks will be skipped",
                extra={"toolchain": toolchain.name, "binary": toolchain.binary},
            )
        self._available[toolchain.name] = available
        return available

    def override_availability(self, availability: Iterable[tuple[str, bool]]) -> None:
        """Pin probe results (used when the environment is known in advance)."""
        self._available.update(availability)
