"""Runtime configuration from environment variables."""

import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from docsmoke import constants


class Settings(BaseSettings):
    """Runtime configuration from environment variables.

    All settings can be overridden via environment variables with DOCSMOKE_ prefix.
    Example: DOCSMOKE_CXX=clang++ DOCSMOKE_CXX_FLAGS='["-std=c++23"]'
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCSMOKE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Toolchain binaries (bare names are resolved on PATH)
    python: str = Field(default_factory=lambda: sys.executable or "python3")
    cxx: str = "c++"
    cc: str = "cc"
    bash: str = "bash"
    node: str = "node"

    cxx_flags: list[str] = Field(default_factory=lambda: ["-std=c++20", "-Wall"])
    c_flags: list[str] = Field(default_factory=lambda: ["-std=c17", "-Wall"])
    link_flags: list[str] = Field(default_factory=lambda: ["-pthread"])

    # Run defaults (CLI options override these)
    timeout_seconds: float = constants.DEFAULT_TIMEOUT_SECONDS
    max_workers: int = constants.DEFAULT_MAX_WORKERS
    output_limit_bytes: int = constants.DEFAULT_OUTPUT_LIMIT_BYTES
    scratch_root: Path | None = None
    """Parent directory for scratch areas (None = system temp dir)."""
