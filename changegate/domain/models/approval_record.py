from enum import Enum
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApprovalStatus(str, Enum):
    """Approval lifecycle status of a change."""

    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    IMPLEMENTING = "implementing"
    COMPLETED = "completed"


class ApprovalEntry(BaseModel):
    """A single reviewer sign-off."""

    approver: str
    approved_at: datetime = Field(default_factory=utcnow)
    comment: str | None = None


class RejectionEntry(BaseModel):
    """A single rejection; reason is mandatory."""

    rejector: str
    rejected_at: datetime = Field(default_factory=utcnow)
    reason: str


class HistoryEntry(BaseModel):
    """Append-only audit line."""

    action: str
    by: str
    at: datetime = Field(default_factory=utcnow)
    details: str | None = None


class ApprovalRecord(BaseModel):
    """Complete approval state of one change.

    Notes:
    - `history` is only ever appended to.
    - `reviewers` keeps first-seen order and drops duplicates.
    """

    model_config = ConfigDict(extra="forbid")

    change_id: str
    status: ApprovalStatus = ApprovalStatus.DRAFT

    requested_by: str | None = None
    requested_at: datetime | None = None
    reviewers: list[str] | None = None

    approvals: list[ApprovalEntry] = Field(default_factory=list)
    rejections: list[RejectionEntry] = Field(default_factory=list)
    history: list[HistoryEntry] = Field(default_factory=list)

    @field_validator("change_id")
    @classmethod
    def _change_id_non_empty(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("change_id must be non-empty")
        return v2

    @field_validator("reviewers")
    @classmethod
    def _dedupe_reviewers(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        return list(dict.fromkeys(r for r in v if r))

    def approvers(self) -> set[str]:
        """Distinct identities that have approved so far."""
        return {a.approver for a in self.approvals}

    def quorum_reached(self) -> bool:
        """True when every named reviewer approved, or any approval exists without reviewers."""
        if self.reviewers:
            return set(self.reviewers).issubset(self.approvers())
        return len(self.approvals) > 0

    def add_history(self, action: str, by: str, details: str | None = None) -> HistoryEntry:
        entry = HistoryEntry(action=action, by=by, details=details)
        self.history.append(entry)
        return entry
