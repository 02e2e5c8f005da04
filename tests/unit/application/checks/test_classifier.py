import pytest

from changegate.application.checks.classifier import classify, output_looks_failed
from changegate.application.checks.executor import CommandOutcome
from changegate.domain.models.check_run import CheckResultStatus


@pytest.mark.parametrize(
    "output,expected",
    [
        ("All tests passed", False),
        ("1 error found", True),
        ("Build FAILED", True),
        ("test failure in module", True),
        ("Found 0 errors", False),
        ("", False),
    ],
)
def test_output_looks_failed(output: str, expected: bool) -> None:
    assert output_looks_failed(output) is expected


def test_timeout() -> None:
    result = classify("test", CommandOutcome(exit_code=None, timed_out=True, duration_ms=5000), 5)

    assert result.status == CheckResultStatus.TIMEOUT
    assert result.errors == ["Check timed out after 5s"]
    assert result.duration_ms == 5000


def test_start_error() -> None:
    outcome = CommandOutcome(exit_code=None, start_error="Failed to start 'x': denied")

    result = classify("lint", outcome, 60)

    assert result.status == CheckResultStatus.FAILED
    assert result.errors == ["Failed to start 'x': denied"]


def test_nonzero_exit_keeps_first_five_stderr_lines() -> None:
    stderr = "\n".join(f"e{i}" for i in range(8)) + "\n\n"
    outcome = CommandOutcome(exit_code=2, stdout="x" * 1500, stderr=stderr)

    result = classify("typecheck", outcome, 60)

    assert result.status == CheckResultStatus.FAILED
    assert result.errors == ["e0", "e1", "e2", "e3", "e4"]
    assert len(result.output) == 1000


def test_nonzero_exit_without_stderr() -> None:
    result = classify("build", CommandOutcome(exit_code=3), 60)

    assert result.errors == ["Command exited with code 3"]
    assert result.output is None


def test_zero_exit_passes_and_truncates_output() -> None:
    result = classify("test", CommandOutcome(exit_code=0, stdout="ok " * 1000), 60)

    assert result.status == CheckResultStatus.PASSED
    assert len(result.output) == 2000
    assert result.errors == []


def test_zero_exit_with_error_text_fails() -> None:
    result = classify("lint", CommandOutcome(exit_code=0, stdout="3 errors found"), 60)
    assert result.status == CheckResultStatus.FAILED


def test_zero_exit_error_text_in_stderr_fails() -> None:
    result = classify("lint", CommandOutcome(exit_code=0, stdout="done", stderr="Failure!"), 60)
    assert result.status == CheckResultStatus.FAILED


def test_strict_exit_code_ignores_output() -> None:
    outcome = CommandOutcome(exit_code=0, stdout="test_error_handling PASSED")

    assert classify("test", outcome, 60).status == CheckResultStatus.FAILED
    assert classify("test", outcome, 60, strict_exit_code=True).status == CheckResultStatus.PASSED


def test_custom_output_limits() -> None:
    outcome = CommandOutcome(exit_code=0, stdout="a" * 50)
    result = classify("test", outcome, 60, max_output_chars=10)
    assert result.output == "a" * 10


def test_long_stderr_lines_are_truncated() -> None:
    outcome = CommandOutcome(exit_code=1, stderr="x" * 5000 + "\nshort")

    result = classify("build", outcome, 60, max_error_output_chars=100)

    assert result.errors == ["x" * 100, "short"]
