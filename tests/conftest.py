from pathlib import Path
from typing import Callable

import pytest

from changegate.application.approval_engine import ApprovalEngine
from changegate.application.checks.history import CheckHistoryStore
from changegate.application.checks.registry import CheckRegistry
from changegate.application.checks.runner import CheckRunner
from changegate.application.config_models import CheckConfig
from changegate.application.project import ProjectLayout
from changegate.application.review_gate import ReviewGate
from changegate.domain.persistence.record_store import InMemoryRecordStore
from tests.fakes import FakeExecutor


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Isolated project root with an empty openspec/changes directory.

    Tests should not write into the real repo's openspec directory.
    """
    (tmp_path / "openspec" / "changes").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def project(project_root: Path) -> ProjectLayout:
    return ProjectLayout(project_root)


@pytest.fixture
def make_change(project: ProjectLayout) -> Callable[[str], Path]:
    """Create a change directory and return its path."""

    def _make(change_id: str) -> Path:
        change_dir = project.changes_dir / change_id
        change_dir.mkdir(parents=True, exist_ok=True)
        (change_dir / "proposal.md").write_text(f"# {change_id}\n", encoding="utf-8")
        return change_dir

    return _make


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def approvals(store: InMemoryRecordStore) -> ApprovalEngine:
    return ApprovalEngine(store=store)


@pytest.fixture
def reviews(store: InMemoryRecordStore) -> ReviewGate:
    return ReviewGate(store=store)


@pytest.fixture
def check_config() -> CheckConfig:
    """Config whose checks A, B, C map to commands cmd-a, cmd-b, cmd-c."""
    return CheckConfig(
        defaults=["A", "B", "C"],
        timeout_seconds=5,
        commands={"A": "cmd-a", "B": "cmd-b", "C": "cmd-c"},
    )


@pytest.fixture
def make_runner(
    project: ProjectLayout,
    store: InMemoryRecordStore,
    check_config: CheckConfig,
) -> Callable[..., CheckRunner]:
    """Build a CheckRunner with a private registry and the given executor."""

    def _make(executor: FakeExecutor, **kwargs) -> CheckRunner:
        return CheckRunner(
            project=project,
            history=kwargs.pop("history", CheckHistoryStore(store)),
            config=kwargs.pop("config", check_config),
            executor=executor,
            registry=kwargs.pop("registry", CheckRegistry()),
            **kwargs,
        )

    return _make
