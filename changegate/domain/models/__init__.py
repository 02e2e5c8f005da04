"""Domain models for the change gate."""

from .approval_record import (
    ApprovalEntry,
    ApprovalRecord,
    ApprovalStatus,
    HistoryEntry,
    RejectionEntry,
)
from .review_comment import (
    CHANGE_TARGET_TYPES,
    ChangeReviews,
    ReviewComment,
    ReviewReply,
    ReviewSeverity,
    ReviewStatus,
    ReviewSummary,
    ReviewTargetType,
    ReviewType,
)
from .check_run import (
    ChangeCheckState,
    CheckResult,
    CheckResultStatus,
    CheckRun,
    CheckRunStatus,
    CheckRunSummary,
    CheckSummaryReport,
)


__all__ = [
    "ApprovalEntry",
    "ApprovalRecord",
    "ApprovalStatus",
    "HistoryEntry",
    "RejectionEntry",
    "CHANGE_TARGET_TYPES",
    "ChangeReviews",
    "ReviewComment",
    "ReviewReply",
    "ReviewSeverity",
    "ReviewStatus",
    "ReviewSummary",
    "ReviewTargetType",
    "ReviewType",
    "ChangeCheckState",
    "CheckResult",
    "CheckResultStatus",
    "CheckRun",
    "CheckRunStatus",
    "CheckRunSummary",
    "CheckSummaryReport",
]
