import threading

import pytest

from changegate.application.checks.registry import CheckRegistry
from changegate.domain.errors import ConflictError


def test_claim_registers_and_releases() -> None:
    registry = CheckRegistry()

    with registry.claim("c1") as token:
        assert registry.is_running("c1")
        assert registry.running_ids() == ["c1"]
        assert token.aborted is False

    assert not registry.is_running("c1")


def test_second_claim_conflicts() -> None:
    registry = CheckRegistry()

    with registry.claim("c1"):
        with pytest.raises(ConflictError):
            with registry.claim("c1"):
                pass
        assert registry.is_running("c1")

    assert not registry.is_running("c1")


def test_claims_for_different_changes_coexist() -> None:
    registry = CheckRegistry()
    with registry.claim("c1"), registry.claim("c2"):
        assert registry.running_ids() == ["c1", "c2"]


def test_released_when_block_raises() -> None:
    registry = CheckRegistry()

    with pytest.raises(RuntimeError):
        with registry.claim("c1"):
            raise RuntimeError("boom")

    assert not registry.is_running("c1")


def test_cancel_flags_token() -> None:
    registry = CheckRegistry()

    with registry.claim("c1") as token:
        assert registry.cancel("c1") is True
        assert token.aborted is True


def test_cancel_without_run() -> None:
    assert CheckRegistry().cancel("c1") is False


def test_concurrent_claims_admit_exactly_one() -> None:
    registry = CheckRegistry()
    barrier = threading.Barrier(8)
    release = threading.Event()
    admitted = []
    conflicts = []

    def worker() -> None:
        barrier.wait()
        try:
            with registry.claim("c1"):
                admitted.append(1)
                release.wait(timeout=5)
        except ConflictError:
            conflicts.append(1)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    # Let the losers fail before the winner releases
    for _ in range(500):
        if len(conflicts) == 7:
            break
        threading.Event().wait(0.01)
    release.set()
    for t in threads:
        t.join()

    assert len(admitted) == 1
    assert len(conflicts) == 7
    assert not registry.is_running("c1")
