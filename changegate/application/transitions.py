"""Declarative transitions for the approval state machine.

Key concepts:
- command -> TransitionResult(required status, target status, history action)
- request_approval and reset_to_draft are unguarded and not in the table
- approve is special: the target is only reached once the quorum is met
"""

from dataclasses import dataclass
from enum import Enum

from changegate.domain.models.approval_record import ApprovalStatus


class Command(str, Enum):
    """Guarded approval commands."""

    APPROVE = "approve"
    REJECT = "reject"
    START_IMPLEMENTATION = "start_implementation"
    MARK_COMPLETED = "mark_completed"


@dataclass(frozen=True, slots=True)
class TransitionResult:
    """Result of a guarded transition.

    Attributes:
        required: Status the record must be in
        target: Status after the transition
        action: History action appended
        verb: Human-readable command used in error messages
    """

    required: ApprovalStatus
    target: ApprovalStatus
    action: str
    verb: str


class ApprovalTransitionTable:
    """Maps guarded commands to their transitions.

    Usage:
        result = ApprovalTransitionTable.get_transition(command)
        if record.status != result.required:
            raise InvalidStateError(...)
    """

    _TRANSITIONS: dict[Command, TransitionResult] = {
        Command.APPROVE: TransitionResult(
            ApprovalStatus.PENDING_APPROVAL, ApprovalStatus.APPROVED, "approved", "approve"
        ),
        Command.REJECT: TransitionResult(
            ApprovalStatus.PENDING_APPROVAL, ApprovalStatus.REJECTED, "rejected", "reject"
        ),
        Command.START_IMPLEMENTATION: TransitionResult(
            ApprovalStatus.APPROVED,
            ApprovalStatus.IMPLEMENTING,
            "start_implementation",
            "start implementation",
        ),
        Command.MARK_COMPLETED: TransitionResult(
            ApprovalStatus.IMPLEMENTING,
            ApprovalStatus.COMPLETED,
            "completed",
            "mark as completed",
        ),
    }

    # Always valid, from any status (including a missing record)
    UNGUARDED_COMMANDS: tuple[str, ...] = ("request_approval", "reset_to_draft")

    @classmethod
    def get_transition(cls, command: Command) -> TransitionResult:
        return cls._TRANSITIONS[command]

    @classmethod
    def valid_commands(cls, status: ApprovalStatus) -> list[str]:
        """List commands accepted from status, unguarded ones first."""
        guarded = [
            cmd.value
            for cmd, result in cls._TRANSITIONS.items()
            if result.required == status
        ]
        return [*cls.UNGUARDED_COMMANDS, *guarded]
