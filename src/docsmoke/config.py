"""Per-run configuration for docsmoke.

RunConfig holds everything a single run needs: step timeout, worker pool
size, output bound, scratch location and filters.

Example:
    ```python
    from docsmoke import RunConfig, check_documents

    config = RunConfig(timeout_seconds=5, max_workers=4)
    report = await check_documents([Path("docs")], config)
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from docsmoke import constants

if TYPE_CHECKING:
    from docsmoke.settings import Settings


class RunConfig(BaseModel):
    """Configuration for one docsmoke run.

    Attributes:
        timeout_seconds: Bound on each build or run step. Range: (0, 300]. Default: 10.
        max_workers: Blocks executed concurrently. 1 runs them sequentially.
        output_limit_bytes: Per-stream capture bound. Default: 4096.
        scratch_root: Parent of the per-block scratch directories.
            If None, the system temp dir is used.
        languages: Only blocks with these (normalized) tags are executed.
            Empty means no filter.
        strict: Malformed or unreadable documents count as failures.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    timeout_seconds: float = Field(
        default=constants.DEFAULT_TIMEOUT_SECONDS,
        gt=0,
        le=constants.MAX_TIMEOUT_SECONDS,
        description="Timeout for each build/run step in seconds",
    )
    max_workers: int = Field(
        default=constants.DEFAULT_MAX_WORKERS,
        ge=1,
        le=constants.MAX_WORKERS,
        description="Concurrent block executions",
    )
    output_limit_bytes: int = Field(
        default=constants.DEFAULT_OUTPUT_LIMIT_BYTES,
        ge=constants.MIN_OUTPUT_LIMIT_BYTES,
        description="Captured bytes per output stream",
    )
    scratch_root: Path | None = Field(
        default=None,
        description="Parent directory for scratch areas (None = system temp dir)",
    )
    languages: frozenset[str] = Field(
        default_factory=frozenset,
        description="Language tags to execute (empty = all)",
    )
    strict: bool = Field(
        default=False,
        description="Count document errors as failures",
    )

    @field_validator("languages", mode="before")
    @classmethod
    def _normalize_languages(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(str(tag).strip().lower() for tag in value if str(tag).strip())
        return value

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> RunConfig:
        """Build a RunConfig from environment settings, then apply overrides.

        Overrides whose value is None are ignored so CLI options that were
        not given fall back to the environment.
        """
        values: dict[str, Any] = {
            "timeout_seconds": settings.timeout_seconds,
            "max_workers": settings.max_workers,
            "output_limit_bytes": settings.output_limit_bytes,
            "scratch_root": settings.scratch_root,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
