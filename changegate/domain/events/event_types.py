"""Change event types for observer pattern notifications."""

from enum import Enum


class ChangeEventType(str, Enum):
    """Typed lifecycle events for tooling integrations."""

    # Approval lifecycle
    APPROVAL_REQUESTED = "approval_requested"
    APPROVAL_GRANTED = "approval_granted"
    APPROVAL_REJECTED = "approval_rejected"
    IMPLEMENTATION_STARTED = "implementation_started"
    CHANGE_COMPLETED = "change_completed"
    RESET_TO_DRAFT = "reset_to_draft"

    # Reviews
    REVIEW_ADDED = "review_added"
    REVIEW_RESOLVED = "review_resolved"

    # Check runs
    CHECKS_STARTED = "checks_started"
    CHECK_FINISHED = "check_finished"
    CHECKS_COMPLETED = "checks_completed"
    CHECKS_STOPPED = "checks_stopped"
