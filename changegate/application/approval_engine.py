"""Approval state machine for changes.

States: draft -> pending_approval -> approved -> implementing -> completed,
with pending_approval -> rejected and reset_to_draft recovering from any state.
Guarded commands go through ApprovalTransitionTable.
"""

import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from changegate.application.transitions import ApprovalTransitionTable, Command
from changegate.domain.constants import APPROVALS_PREFIX
from changegate.domain.errors import InvalidStateError, NotFoundError, StoreError
from changegate.domain.events.emitter import ChangeEventEmitter
from changegate.domain.events.event import ChangeEvent
from changegate.domain.events.event_types import ChangeEventType
from changegate.domain.models.approval_record import (
    ApprovalEntry,
    ApprovalRecord,
    ApprovalStatus,
    RejectionEntry,
    utcnow,
)
from changegate.domain.persistence.record_store import RecordStore
from changegate.domain.validation.id_validator import ensure_safe_id

logger = logging.getLogger(__name__)


@dataclass
class ApprovalEngine:
    """Owns the approval lifecycle of every change in a project.

    Each mutating command is a read-modify-write of one record, serialized per
    change through the store's key lock. The engine does not consult open
    reviews; see ChangeOrchestrator.request_approval_with_gate for that.
    """

    store: RecordStore
    event_emitter: ChangeEventEmitter = field(default_factory=ChangeEventEmitter)

    # ========================================================================
    # Commands
    # ========================================================================

    def request_approval(
        self,
        change_id: str,
        requested_by: str,
        reviewers: list[str] | None = None,
    ) -> ApprovalRecord:
        """Put a change up for approval.

        Accepted from any status, including approved or completed records,
        which are moved back to pending_approval. Creates a draft record first
        when none exists.

        Args:
            change_id: The change to submit
            requested_by: Who is asking
            reviewers: Reviewers who must all approve; replaces any previous list

        Returns:
            The updated record
        """
        change_id = ensure_safe_id(change_id)
        key = self._key(change_id)

        with self.store.locked(key):
            record = self._load(change_id) or ApprovalRecord(change_id=change_id)

            if record.status not in (ApprovalStatus.DRAFT, ApprovalStatus.REJECTED):
                logger.info(
                    f"Re-requesting approval for {change_id} from status {record.status.value}"
                )

            record.status = ApprovalStatus.PENDING_APPROVAL
            record.requested_at = utcnow()
            record.requested_by = requested_by
            if reviewers is not None:
                record.reviewers = list(dict.fromkeys(r for r in reviewers if r))

            record.add_history(
                "request_approval",
                requested_by,
                f"Reviewers: {', '.join(reviewers)}" if reviewers else None,
            )
            self._save(record)

        self._emit(ChangeEventType.APPROVAL_REQUESTED, record, requested_by)
        return record

    def approve(
        self,
        change_id: str,
        approver: str,
        comment: str | None = None,
    ) -> ApprovalRecord:
        """Record an approval; moves to approved once the quorum is met.

        Raises:
            NotFoundError: If the change has no approval record
            InvalidStateError: If the change is not pending_approval
        """
        transition = ApprovalTransitionTable.get_transition(Command.APPROVE)
        change_id = ensure_safe_id(change_id)

        with self.store.locked(self._key(change_id)):
            record = self._require(change_id)
            self._guard(record, transition.required, transition.verb)

            record.approvals.append(ApprovalEntry(approver=approver, comment=comment))
            if record.quorum_reached():
                record.status = transition.target
            else:
                outstanding = sorted(set(record.reviewers or []) - record.approvers())
                logger.info(f"{change_id} approved by {approver}; waiting on {outstanding}")

            record.add_history(transition.action, approver, comment)
            self._save(record)

        if record.status == ApprovalStatus.APPROVED:
            self._emit(ChangeEventType.APPROVAL_GRANTED, record, approver)
        return record

    def reject(self, change_id: str, rejector: str, reason: str) -> ApprovalRecord:
        """Reject a pending change.

        Raises:
            NotFoundError: If the change has no approval record
            InvalidStateError: If the change is not pending_approval
            ValueError: If reason is blank
        """
        if not reason or not reason.strip():
            raise ValueError("Rejection requires a reason")

        transition = ApprovalTransitionTable.get_transition(Command.REJECT)
        change_id = ensure_safe_id(change_id)

        with self.store.locked(self._key(change_id)):
            record = self._require(change_id)
            self._guard(record, transition.required, transition.verb)

            record.rejections.append(RejectionEntry(rejector=rejector, reason=reason))
            record.status = transition.target
            record.add_history(transition.action, rejector, reason)
            self._save(record)

        self._emit(ChangeEventType.APPROVAL_REJECTED, record, rejector)
        return record

    def start_implementation(self, change_id: str, implementer: str) -> ApprovalRecord:
        """Move an approved change to implementing."""
        return self._simple_transition(
            Command.START_IMPLEMENTATION,
            change_id,
            implementer,
            ChangeEventType.IMPLEMENTATION_STARTED,
        )

    def mark_completed(self, change_id: str, completed_by: str) -> ApprovalRecord:
        """Move an implementing change to completed."""
        return self._simple_transition(
            Command.MARK_COMPLETED,
            change_id,
            completed_by,
            ChangeEventType.CHANGE_COMPLETED,
        )

    def reset_to_draft(self, change_id: str, reset_by: str) -> ApprovalRecord:
        """Return a change to draft, e.g. to resubmit after rejection.

        Creates a fresh draft (history: 'created') when no record exists.
        """
        change_id = ensure_safe_id(change_id)

        with self.store.locked(self._key(change_id)):
            record = self._load(change_id)
            if record is None:
                record = ApprovalRecord(change_id=change_id)
                record.add_history("created", reset_by)
            else:
                record.status = ApprovalStatus.DRAFT
                record.add_history("reset_to_draft", reset_by)
            self._save(record)

        self._emit(ChangeEventType.RESET_TO_DRAFT, record, reset_by)
        return record

    def delete_approval(self, change_id: str) -> bool:
        """Administrative delete. Returns False when there was nothing to delete."""
        change_id = ensure_safe_id(change_id)
        with self.store.locked(self._key(change_id)):
            deleted = self.store.delete(self._key(change_id))
        if deleted:
            logger.info(f"Deleted approval record for {change_id}")
        return deleted

    # ========================================================================
    # Queries
    # ========================================================================

    def get_status(self, change_id: str) -> ApprovalRecord | None:
        """Return the record for change_id, or None if it has none."""
        return self._load(ensure_safe_id(change_id))

    def list_all(self) -> list[ApprovalRecord]:
        """All approval records; unreadable records are skipped."""
        records = []
        prefix = f"{APPROVALS_PREFIX}/"
        for key in self.store.list_keys(prefix):
            change_id = key[len(prefix):]
            try:
                record = self._load(change_id)
            except StoreError as e:
                logger.warning(f"Skipping unreadable approval record {key}: {e}")
                continue
            if record is not None:
                records.append(record)
        return records

    def list_pending(self) -> list[ApprovalRecord]:
        return [r for r in self.list_all() if r.status == ApprovalStatus.PENDING_APPROVAL]

    # ========================================================================
    # Internals
    # ========================================================================

    def _simple_transition(
        self,
        command: Command,
        change_id: str,
        actor: str,
        event_type: ChangeEventType,
    ) -> ApprovalRecord:
        transition = ApprovalTransitionTable.get_transition(command)
        change_id = ensure_safe_id(change_id)

        with self.store.locked(self._key(change_id)):
            record = self._require(change_id)
            self._guard(record, transition.required, transition.verb)
            record.status = transition.target
            record.add_history(transition.action, actor)
            self._save(record)

        self._emit(event_type, record, actor)
        return record

    @staticmethod
    def _key(change_id: str) -> str:
        return f"{APPROVALS_PREFIX}/{change_id}"

    def _load(self, change_id: str) -> ApprovalRecord | None:
        data = self.store.get(self._key(change_id))
        if data is None:
            return None
        try:
            return ApprovalRecord.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"Invalid approval record for {change_id}: {e}") from e

    def _require(self, change_id: str) -> ApprovalRecord:
        record = self._load(change_id)
        if record is None:
            raise NotFoundError("approval record", change_id)
        return record

    @staticmethod
    def _guard(record: ApprovalRecord, required: ApprovalStatus, verb: str) -> None:
        if record.status != required:
            raise InvalidStateError(verb, record.status.value, required.value)

    def _save(self, record: ApprovalRecord) -> None:
        self.store.put(self._key(record.change_id), record.model_dump(mode="json"))
        logger.debug(f"Saved approval record {record.change_id} status={record.status.value}")

    def _emit(self, event_type: ChangeEventType, record: ApprovalRecord, actor: str) -> None:
        self.event_emitter.emit(
            ChangeEvent(
                event_type=event_type,
                change_id=record.change_id,
                actor=actor,
                status=record.status.value,
            )
        )
