"""Turns a CommandOutcome into a CheckResult.

Rules, in order:
1. timed out                -> TIMEOUT
2. could not start          -> FAILED, error text recorded
3. non-zero exit            -> FAILED, first stderr lines recorded, each cut
                               to max_error_output_chars
4. zero exit                -> FAILED if the output looks like an error report
                               ("error", "failed", "failure") and does not say
                               "0 errors"; PASSED otherwise

Rule 4's text scan can misfire, e.g. on a passing test whose name contains
"error". `strict_exit_code=True` skips it and trusts the exit code alone.
"""

import re

from changegate.domain.models.check_run import CheckResult, CheckResultStatus
from changegate.application.checks.executor import CommandOutcome

ERROR_PATTERN = re.compile(r"error|failed|failure", re.IGNORECASE)
ZERO_ERRORS_PATTERN = re.compile(r"0 error", re.IGNORECASE)

MAX_ERROR_LINES = 5


def output_looks_failed(output: str) -> bool:
    return bool(ERROR_PATTERN.search(output)) and not ZERO_ERRORS_PATTERN.search(output)


def classify(
    check_type: str,
    outcome: CommandOutcome,
    timeout: float,
    *,
    strict_exit_code: bool = False,
    max_output_chars: int = 2000,
    max_error_output_chars: int = 1000,
) -> CheckResult:
    if outcome.timed_out:
        return CheckResult(
            type=check_type,
            status=CheckResultStatus.TIMEOUT,
            errors=[f"Check timed out after {timeout:g}s"],
            duration_ms=outcome.duration_ms,
        )

    if outcome.start_error is not None:
        return CheckResult(
            type=check_type,
            status=CheckResultStatus.FAILED,
            errors=[outcome.start_error],
            duration_ms=outcome.duration_ms,
        )

    if outcome.exit_code != 0:
        error_lines = [
            line[:max_error_output_chars]
            for line in outcome.stderr.splitlines()
            if line.strip()
        ]
        errors = error_lines[:MAX_ERROR_LINES] or [
            f"Command exited with code {outcome.exit_code}"
        ]
        return CheckResult(
            type=check_type,
            status=CheckResultStatus.FAILED,
            output=outcome.stdout[:max_error_output_chars] or None,
            errors=errors,
            duration_ms=outcome.duration_ms,
        )

    output = outcome.combined_output
    failed = not strict_exit_code and output_looks_failed(output)
    return CheckResult(
        type=check_type,
        status=CheckResultStatus.FAILED if failed else CheckResultStatus.PASSED,
        output=output[:max_output_chars],
        duration_ms=outcome.duration_ms,
    )
