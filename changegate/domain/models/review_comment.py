import uuid
from enum import Enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from changegate.domain.models.approval_record import utcnow


def short_id() -> str:
    return uuid.uuid4().hex[:8]


class ReviewTargetType(str, Enum):
    """Document a review comment is attached to."""

    PROPOSAL = "proposal"
    DESIGN = "design"
    SPEC = "spec"
    TASKS = "tasks"


# Change documents consulted by the approval readiness check
CHANGE_TARGET_TYPES = (
    ReviewTargetType.PROPOSAL,
    ReviewTargetType.DESIGN,
    ReviewTargetType.TASKS,
)


class ReviewType(str, Enum):
    COMMENT = "comment"
    SUGGESTION = "suggestion"
    QUESTION = "question"
    ISSUE = "issue"


class ReviewSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ReviewStatus(str, Enum):
    OPEN = "open"          # Awaiting action
    RESOLVED = "resolved"  # Addressed
    WONT_FIX = "wont_fix"  # Acknowledged, not addressed


class ReviewReply(BaseModel):
    id: str = Field(default_factory=short_id)
    author: str
    body: str
    created_at: datetime = Field(default_factory=utcnow)


class ReviewComment(BaseModel):
    """A review comment on a change document or spec.

    Resolution fields are set if and only if status is not OPEN.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=short_id)

    # Target
    target_type: ReviewTargetType
    target_id: str
    line_number: int | None = None

    # Content
    type: ReviewType
    severity: ReviewSeverity | None = None
    body: str
    suggested_change: str | None = None

    # Metadata
    author: str
    status: ReviewStatus = ReviewStatus.OPEN
    created_at: datetime = Field(default_factory=utcnow)
    resolved_at: datetime | None = None
    resolved_by: str | None = None

    replies: list[ReviewReply] = Field(default_factory=list)

    @field_validator("body")
    @classmethod
    def _body_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("body must be non-empty")
        return v

    @field_validator("line_number")
    @classmethod
    def _line_number_ge_1(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("line_number must be >= 1")
        return v

    @model_validator(mode="after")
    def _resolution_matches_status(self) -> "ReviewComment":
        resolved = self.resolved_at is not None and self.resolved_by is not None
        if self.status == ReviewStatus.OPEN and (self.resolved_at or self.resolved_by):
            raise ValueError("open reviews cannot carry resolution fields")
        if self.status != ReviewStatus.OPEN and not resolved:
            raise ValueError(f"{self.status.value} reviews require resolved_at and resolved_by")
        return self

    @property
    def is_blocking(self) -> bool:
        """Open high-severity issue."""
        return (
            self.status == ReviewStatus.OPEN
            and self.type == ReviewType.ISSUE
            and self.severity == ReviewSeverity.HIGH
        )

    @property
    def is_open_question(self) -> bool:
        return self.status == ReviewStatus.OPEN and self.type == ReviewType.QUESTION


def _zero_counts(enum_cls: Any) -> dict[str, int]:
    return {member.value: 0 for member in enum_cls}


class ReviewSummary(BaseModel):
    """Counts over a set of review comments."""

    total: int = 0
    open: int = 0
    resolved: int = 0
    wont_fix: int = 0
    by_type: dict[str, int] = Field(default_factory=lambda: _zero_counts(ReviewType))
    by_severity: dict[str, int] = Field(default_factory=lambda: _zero_counts(ReviewSeverity))
    has_blocking_issues: bool = False

    @classmethod
    def from_reviews(cls, reviews: list[ReviewComment]) -> "ReviewSummary":
        summary = cls(total=len(reviews))
        for review in reviews:
            if review.status == ReviewStatus.OPEN:
                summary.open += 1
            elif review.status == ReviewStatus.RESOLVED:
                summary.resolved += 1
            elif review.status == ReviewStatus.WONT_FIX:
                summary.wont_fix += 1

            summary.by_type[review.type.value] += 1
            if review.severity:
                summary.by_severity[review.severity.value] += 1

            if review.is_blocking:
                summary.has_blocking_issues = True
        return summary


class ChangeReviews(BaseModel):
    """All reviews attached to one change's documents."""

    proposal: list[ReviewComment] = Field(default_factory=list)
    design: list[ReviewComment] = Field(default_factory=list)
    tasks: list[ReviewComment] = Field(default_factory=list)
    summary: ReviewSummary = Field(default_factory=ReviewSummary)

    def all_reviews(self) -> list[ReviewComment]:
        return [*self.proposal, *self.design, *self.tasks]
