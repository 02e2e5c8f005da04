from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from changegate.application.checks.history import CheckHistoryStore
from changegate.domain.models.check_run import CheckRun, CheckRunStatus
from changegate.domain.persistence.record_store import InMemoryRecordStore, JsonFileRecordStore


def _run(change_id: str, minutes: int, status: CheckRunStatus = CheckRunStatus.PASSED) -> CheckRun:
    completed = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc) + timedelta(minutes=minutes)
    return CheckRun(change_id=change_id, status=status, completed_at=completed)


@pytest.fixture
def history() -> CheckHistoryStore:
    return CheckHistoryStore(InMemoryRecordStore())


def test_append_key_layout(history: CheckHistoryStore) -> None:
    run = _run("c1", 0)

    key = history.append(run)

    assert key == f"qa/c1/2026-01-01T12-00-00-000000Z_{run.id}"


def test_incomplete_run_rejected(history: CheckHistoryStore) -> None:
    with pytest.raises(ValueError):
        history.append(CheckRun(change_id="c1"))


def test_history_most_recent_first_with_limit(history: CheckHistoryStore) -> None:
    runs = [_run("c1", m) for m in (5, 1, 3)]
    for run in runs:
        history.append(run)

    result = history.history("c1", limit=2)

    assert [r.id for r in result] == [runs[0].id, runs[2].id]


def test_history_limit_zero(history: CheckHistoryStore) -> None:
    history.append(_run("c1", 0))
    assert history.history("c1", limit=0) == []


def test_latest(history: CheckHistoryStore) -> None:
    assert history.latest("c1") is None

    history.append(_run("c1", 0, CheckRunStatus.PASSED))
    newest = _run("c1", 10, CheckRunStatus.FAILED)
    history.append(newest)

    assert history.latest("c1").id == newest.id


def test_change_ids_sharing_a_prefix_are_separate(history: CheckHistoryStore) -> None:
    history.append(_run("c1", 0))
    other = _run("c1_x", 5)
    history.append(other)

    assert len(history.history("c1")) == 1
    assert history.latest("c1_x").id == other.id


def test_unreadable_runs_are_skipped(tmp_path: Path) -> None:
    history = CheckHistoryStore(JsonFileRecordStore(tmp_path))
    good = _run("c1", 0)
    history.append(good)
    (tmp_path / "qa" / "c1" / "2099-01-01T00-00-00-000000Z_bad.json").write_text("{", encoding="utf-8")

    assert [r.id for r in history.history("c1")] == [good.id]


def test_json_round_trip(tmp_path: Path) -> None:
    history = CheckHistoryStore(JsonFileRecordStore(tmp_path))
    run = _run("c1", 0, CheckRunStatus.FAILED)
    history.append(run)

    assert history.latest("c1") == run
