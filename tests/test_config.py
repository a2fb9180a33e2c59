"""Unit tests for RunConfig and Settings.

No mocks - uses real environment variables via monkeypatch.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from docsmoke.config import RunConfig
from docsmoke.settings import Settings

# ============================================================================
# RunConfig Validation
# ============================================================================


class TestRunConfigValidation:
    """Tests for RunConfig field validation."""

    def test_defaults(self) -> None:
        config = RunConfig()
        assert config.timeout_seconds == 10
        assert config.max_workers == 1
        assert config.output_limit_bytes == 4096
        assert config.scratch_root is None
        assert config.languages == frozenset()
        assert config.strict is False

    def test_timeout_range(self) -> None:
        """timeout_seconds must be in (0, 300]."""
        assert RunConfig(timeout_seconds=0.5).timeout_seconds == 0.5
        assert RunConfig(timeout_seconds=300).timeout_seconds == 300

        with pytest.raises(ValidationError):
            RunConfig(timeout_seconds=0)

        with pytest.raises(ValidationError):
            RunConfig(timeout_seconds=301)

    def test_max_workers_range(self) -> None:
        assert RunConfig(max_workers=64).max_workers == 64

        with pytest.raises(ValidationError):
            RunConfig(max_workers=0)

        with pytest.raises(ValidationError):
            RunConfig(max_workers=65)

    def test_output_limit_minimum(self) -> None:
        with pytest.raises(ValidationError):
            RunConfig(output_limit_bytes=255)

    def test_languages_normalized(self) -> None:
        config = RunConfig(languages=["Python", " cpp ", ""])
        assert config.languages == frozenset({"python", "cpp"})

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            RunConfig(unknown_field="value")  # type: ignore[call-arg]

    def test_frozen(self) -> None:
        config = RunConfig()
        with pytest.raises(ValidationError):
            config.max_workers = 4  # type: ignore[misc]


# ============================================================================
# Settings from Environment
# ============================================================================


class TestSettings:
    def test_env_overrides(self, settings: Settings, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("DOCSMOKE_CXX", "clang++")
        monkeypatch.setenv("DOCSMOKE_CXX_FLAGS", '["-std=c++23"]')
        monkeypatch.setenv("DOCSMOKE_TIMEOUT_SECONDS", "3.5")
        monkeypatch.setenv("DOCSMOKE_SCRATCH_ROOT", str(tmp_path))

        env_settings = Settings()
        assert env_settings.cxx == "clang++"
        assert env_settings.cxx_flags == ["-std=c++23"]
        assert env_settings.timeout_seconds == 3.5
        assert env_settings.scratch_root == tmp_path

    def test_from_settings_applies_overrides(self, settings: Settings) -> None:
        base = settings.model_copy(update={"max_workers": 3, "timeout_seconds": 7.0})
        config = RunConfig.from_settings(base, max_workers=None, timeout_seconds=2, strict=True)
        assert config.max_workers == 3
        assert config.timeout_seconds == 2
        assert config.strict is True

    def test_from_settings_validates(self, settings: Settings) -> None:
        with pytest.raises(ValidationError):
            RunConfig.from_settings(settings.model_copy(update={"max_workers": 0}))
