"""Tests for configuration loading and models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from changegate.application.config_loader import ConfigLoadError, load_config
from changegate.application.config_models import (
    DEFAULT_CHECK_COMMANDS,
    DEFAULT_CHECKS,
    ChangeGateConfig,
    CheckConfig,
)


def _write(base: Path, text: str) -> None:
    path = base / ".changegate" / "config.yml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def dirs(tmp_path: Path) -> tuple[Path, Path]:
    project_root = tmp_path / "project"
    user_home = tmp_path / "home"
    project_root.mkdir()
    user_home.mkdir()
    return project_root, user_home


class TestCheckConfig:
    def test_defaults(self) -> None:
        config = CheckConfig()

        assert config.defaults == DEFAULT_CHECKS
        assert config.timeout_seconds == 60
        assert config.strict_exit_code is False
        assert config.max_output_chars == 2000
        assert config.max_error_output_chars == 1000

    def test_command_override_falls_back_to_builtins(self) -> None:
        config = CheckConfig(commands={"test": "pytest -q", "docs": "mkdocs build"})

        assert config.command_for("test") == "pytest -q"
        assert config.command_for("lint") == DEFAULT_CHECK_COMMANDS["lint"]
        assert config.command_for("docs") == "mkdocs build"
        assert config.command_for("unknown") is None
        assert "docs" in config.known_checks()

    @pytest.mark.parametrize("timeout", [0, -5])
    def test_timeout_must_be_positive(self, timeout: float) -> None:
        with pytest.raises(ValidationError):
            CheckConfig(timeout_seconds=timeout)

    def test_unknown_keys_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CheckConfig(timeout=5)


class TestLoadConfig:
    def test_no_files_gives_defaults(self, dirs) -> None:
        project_root, user_home = dirs
        assert load_config(project_root=project_root, user_home=user_home) == ChangeGateConfig()

    def test_project_overrides_user(self, dirs) -> None:
        project_root, user_home = dirs
        _write(user_home, "checks:\n  timeout_seconds: 30\n  commands:\n    lint: ruff check .\n")
        _write(project_root, "checks:\n  timeout_seconds: 10\n  commands:\n    test: pytest -q\n")

        config = load_config(project_root=project_root, user_home=user_home)

        assert config.checks.timeout_seconds == 10
        assert config.checks.commands == {"lint": "ruff check .", "test": "pytest -q"}
        assert config.checks.defaults == DEFAULT_CHECKS

    def test_readiness_toggle(self, dirs) -> None:
        project_root, user_home = dirs
        _write(project_root, "require_review_readiness: false\n")
        assert load_config(project_root=project_root, user_home=user_home).require_review_readiness is False

    def test_empty_file_is_ignored(self, dirs) -> None:
        project_root, user_home = dirs
        _write(project_root, "")
        assert load_config(project_root=project_root, user_home=user_home) == ChangeGateConfig()

    def test_malformed_yaml(self, dirs) -> None:
        project_root, user_home = dirs
        _write(project_root, "checks: [unclosed\n")

        with pytest.raises(ConfigLoadError, match="Malformed YAML"):
            load_config(project_root=project_root, user_home=user_home)

    def test_non_mapping_root(self, dirs) -> None:
        project_root, user_home = dirs
        _write(project_root, "- a\n- b\n")

        with pytest.raises(ConfigLoadError, match="YAML root must be a mapping"):
            load_config(project_root=project_root, user_home=user_home)

    def test_invalid_settings(self, dirs) -> None:
        project_root, user_home = dirs
        _write(project_root, "checks:\n  timeout_seconds: -1\n")

        with pytest.raises(ConfigLoadError) as exc_info:
            load_config(project_root=project_root, user_home=user_home)

        assert isinstance(exc_info.value.cause, ValidationError)
        assert exc_info.value.path == project_root / ".changegate" / "config.yml"
