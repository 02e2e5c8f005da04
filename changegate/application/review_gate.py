"""Review comments on change documents and the approval readiness gate.

Storage layout (record store keys):
    reviews/specs/<spec_id>                 spec reviews
    reviews/changes/<change_id>/<type>      proposal/design/tasks reviews
"""

import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from changegate.domain.constants import REVIEWS_PREFIX
from changegate.domain.errors import StoreError
from changegate.domain.events.emitter import ChangeEventEmitter
from changegate.domain.events.event import ChangeEvent
from changegate.domain.events.event_types import ChangeEventType
from changegate.domain.models.approval_record import utcnow
from changegate.domain.models.review_comment import (
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
from changegate.domain.persistence.record_store import RecordStore
from changegate.domain.validation.id_validator import ensure_safe_id

logger = logging.getLogger(__name__)


@dataclass
class ReviewGate:
    """Review comment lifecycle plus the blocking decision for a change.

    Missing reviews are signalled with None/False rather than exceptions.
    """

    store: RecordStore
    event_emitter: ChangeEventEmitter = field(default_factory=ChangeEventEmitter)

    def add_review(
        self,
        target_type: ReviewTargetType,
        target_id: str,
        type: ReviewType,
        body: str,
        author: str,
        line_number: int | None = None,
        severity: ReviewSeverity | None = None,
        suggested_change: str | None = None,
    ) -> ReviewComment:
        """Create an open review comment on a target.

        Raises:
            InvalidIdError: If target_id is unsafe
            pydantic.ValidationError: If body is blank or line_number < 1
        """
        target_type = ReviewTargetType(target_type)
        key = self._key(target_type, target_id)

        review = ReviewComment(
            target_type=target_type,
            target_id=ensure_safe_id(target_id),
            line_number=line_number,
            type=ReviewType(type),
            severity=ReviewSeverity(severity) if severity else None,
            body=body,
            suggested_change=suggested_change,
            author=author,
        )

        with self.store.locked(key):
            reviews = self._load(key)
            reviews.append(review)
            self._save(key, reviews)

        self.event_emitter.emit(
            ChangeEvent(
                event_type=ChangeEventType.REVIEW_ADDED,
                change_id=review.target_id,
                actor=author,
                status=review.status.value,
                metadata={
                    "review_id": review.id,
                    "target": target_type.value,
                    "type": review.type.value,
                },
            )
        )
        return review

    def list_reviews(
        self,
        target_type: ReviewTargetType,
        target_id: str,
        status: ReviewStatus | None = None,
        type: ReviewType | None = None,
    ) -> list[ReviewComment]:
        """Reviews on a target in creation order, optionally filtered."""
        reviews = self._load(self._key(ReviewTargetType(target_type), target_id))
        if status is not None:
            reviews = [r for r in reviews if r.status == ReviewStatus(status)]
        if type is not None:
            reviews = [r for r in reviews if r.type == ReviewType(type)]
        return reviews

    def get_review(
        self,
        target_type: ReviewTargetType,
        target_id: str,
        review_id: str,
    ) -> ReviewComment | None:
        reviews = self._load(self._key(ReviewTargetType(target_type), target_id))
        return next((r for r in reviews if r.id == review_id), None)

    def add_reply(
        self,
        target_type: ReviewTargetType,
        target_id: str,
        review_id: str,
        author: str,
        body: str,
    ) -> ReviewReply | None:
        """Append a reply. Returns None when the review does not exist."""
        key = self._key(ReviewTargetType(target_type), target_id)

        with self.store.locked(key):
            reviews = self._load(key)
            review = next((r for r in reviews if r.id == review_id), None)
            if review is None:
                return None

            reply = ReviewReply(author=author, body=body)
            review.replies.append(reply)
            self._save(key, reviews)

        return reply

    def resolve_review(
        self,
        target_type: ReviewTargetType,
        target_id: str,
        review_id: str,
        resolved_by: str,
        status: ReviewStatus = ReviewStatus.RESOLVED,
    ) -> bool:
        """Close a review as resolved or wont_fix.

        Returns:
            False when the review does not exist, True otherwise

        Raises:
            ValueError: If status is OPEN
        """
        status = ReviewStatus(status)
        if status == ReviewStatus.OPEN:
            raise ValueError("Reviews can only be resolved as 'resolved' or 'wont_fix'")

        key = self._key(ReviewTargetType(target_type), target_id)

        with self.store.locked(key):
            reviews = self._load(key)
            review = next((r for r in reviews if r.id == review_id), None)
            if review is None:
                return False

            review.status = status
            review.resolved_at = utcnow()
            review.resolved_by = resolved_by
            self._save(key, reviews)

        self.event_emitter.emit(
            ChangeEvent(
                event_type=ChangeEventType.REVIEW_RESOLVED,
                change_id=review.target_id,
                actor=resolved_by,
                status=status.value,
                metadata={"review_id": review_id, "target": review.target_type.value},
            )
        )
        return True

    def get_review_summary(self, target_type: ReviewTargetType, target_id: str) -> ReviewSummary:
        return ReviewSummary.from_reviews(
            self._load(self._key(ReviewTargetType(target_type), target_id))
        )

    def get_change_reviews(self, change_id: str) -> ChangeReviews:
        """Reviews on the proposal, design and tasks documents of one change."""
        by_target = {
            target: self._load(self._key(target, change_id)) for target in CHANGE_TARGET_TYPES
        }
        result = ChangeReviews(
            proposal=by_target[ReviewTargetType.PROPOSAL],
            design=by_target[ReviewTargetType.DESIGN],
            tasks=by_target[ReviewTargetType.TASKS],
        )
        result.summary = ReviewSummary.from_reviews(result.all_reviews())
        return result

    def check_approval_readiness(self, change_id: str) -> list[str]:
        """Blockers preventing an approval request; empty means ready.

        Advisory only: the approval engine does not enforce it.
        """
        reviews = self.get_change_reviews(change_id).all_reviews()
        blockers: list[str] = []

        high_issues = [r for r in reviews if r.is_blocking]
        if high_issues:
            blockers.append(f"{len(high_issues)} high-severity issue(s) must be resolved")

        open_questions = [r for r in reviews if r.is_open_question]
        if open_questions:
            blockers.append(f"{len(open_questions)} question(s) need to be answered")

        return blockers

    @staticmethod
    def _key(target_type: ReviewTargetType, target_id: str) -> str:
        safe_id = ensure_safe_id(target_id)
        if target_type == ReviewTargetType.SPEC:
            return f"{REVIEWS_PREFIX}/specs/{safe_id}"
        return f"{REVIEWS_PREFIX}/changes/{safe_id}/{target_type.value}"

    def _load(self, key: str) -> list[ReviewComment]:
        data = self.store.get(key)
        if data is None:
            return []
        try:
            return [ReviewComment.model_validate(item) for item in data]
        except (ValidationError, TypeError) as e:
            raise StoreError(f"Invalid review set at {key}: {e}") from e

    def _save(self, key: str, reviews: list[ReviewComment]) -> None:
        self.store.put(key, [r.model_dump(mode="json") for r in reviews])
