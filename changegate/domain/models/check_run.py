from enum import Enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from changegate.domain.models.approval_record import utcnow
from changegate.domain.models.review_comment import short_id


class CheckResultStatus(str, Enum):
    """Outcome of a single check."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    TIMEOUT = "timeout"


class CheckRunStatus(str, Enum):
    """Outcome of a whole check run."""

    PENDING = "pending"    # Never run
    RUNNING = "running"    # Registered in the check registry
    PASSED = "passed"
    FAILED = "failed"
    STOPPED = "stopped"    # Cancelled between checks
    TIMEOUT = "timeout"


class CheckResult(BaseModel):
    """Result of one named check inside a run."""

    type: str
    status: CheckResultStatus
    output: str | None = None
    errors: list[str] = Field(default_factory=list)
    duration_ms: int = 0


class CheckRunSummary(BaseModel):
    """Aggregate counts.

    `total` is the number of checks requested. TIMEOUT results are not
    counted as passed, failed or skipped.
    """

    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0

    def record(self, result: CheckResult) -> None:
        if result.status == CheckResultStatus.PASSED:
            self.passed += 1
        elif result.status == CheckResultStatus.FAILED:
            self.failed += 1
        elif result.status == CheckResultStatus.SKIPPED:
            self.skipped += 1


class CheckRun(BaseModel):
    """One invocation of the check engine for a change."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=short_id)
    change_id: str
    status: CheckRunStatus = CheckRunStatus.PENDING
    checks: list[CheckResult] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    summary: CheckRunSummary = Field(default_factory=CheckRunSummary)


class ChangeCheckState(BaseModel):
    """Per-change line of the project-wide check summary."""

    name: str
    status: CheckRunStatus
    last_run: datetime | None = None


class CheckSummaryReport(BaseModel):
    """Project-wide rollup of the latest check run per change."""

    total: int = 0
    passed: int = 0
    failed: int = 0
    running: int = 0
    changes: list[ChangeCheckState] = Field(default_factory=list)
