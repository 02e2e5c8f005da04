from pathlib import Path
from typing import Callable

import pytest
from click.testing import CliRunner, Result

from changegate.interface.cli.cli import cli


@pytest.fixture
def cli_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Project root with one change (c1) and an isolated home directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))

    root = tmp_path / "project"
    (root / "openspec" / "changes" / "c1").mkdir(parents=True)
    return root


@pytest.fixture
def invoke(cli_root: Path) -> Callable[..., Result]:
    def _invoke(*args: str, json_mode: bool = False) -> Result:
        prefix = ["--json"] if json_mode else []
        return CliRunner().invoke(
            cli,
            [*prefix, "--project-root", str(cli_root), *args],
            prog_name="changegate",
        )

    return _invoke
