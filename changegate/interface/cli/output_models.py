from typing import Literal

from pydantic import BaseModel, Field

from changegate.domain.models.approval_record import ApprovalRecord
from changegate.domain.models.check_run import CheckRun, CheckSummaryReport
from changegate.domain.models.review_comment import ReviewComment, ReviewReply


class BaseOutput(BaseModel):
    schema_version: int = 1
    command: str
    exit_code: int
    error: str | None = None


class ApprovalOutput(BaseOutput):
    # On errors the record may be unknown; omit it from JSON via exclude_none.
    change_id: str
    record: ApprovalRecord | None = None
    valid_commands: list[str] = Field(default_factory=list)


class ApprovalListOutput(BaseOutput):
    command: Literal["approval list"] = "approval list"
    records: list[ApprovalRecord] = Field(default_factory=list)
    total: int = 0


class GateOutput(BaseOutput):
    """Approval request refused by open reviews."""

    command: Literal["approval request"] = "approval request"
    change_id: str
    blockers: list[str] = Field(default_factory=list)


class ReviewOutput(BaseOutput):
    command: Literal["review add"] = "review add"
    review: ReviewComment | None = None


class ReviewListOutput(BaseOutput):
    command: Literal["review list"] = "review list"
    reviews: list[ReviewComment] = Field(default_factory=list)
    total: int = 0


class ReplyOutput(BaseOutput):
    command: Literal["review reply"] = "review reply"
    review_id: str
    reply: ReviewReply | None = None


class ResolveOutput(BaseOutput):
    command: Literal["review resolve"] = "review resolve"
    review_id: str
    resolved: bool = False


class ReadinessOutput(BaseOutput):
    command: Literal["review readiness"] = "review readiness"
    change_id: str
    ready: bool = False
    blockers: list[str] = Field(default_factory=list)


class CheckRunOutput(BaseOutput):
    change_id: str
    run: CheckRun | None = None


class CheckHistoryOutput(BaseOutput):
    command: Literal["checks history"] = "checks history"
    change_id: str
    runs: list[CheckRun] = Field(default_factory=list)
    total: int = 0


class CheckSummaryOutput(BaseOutput):
    command: Literal["checks summary"] = "checks summary"
    report: CheckSummaryReport | None = None
