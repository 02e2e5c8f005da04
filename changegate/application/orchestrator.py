"""Composition of the approval engine, review gate and check runner."""

import logging
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field

from changegate.application.approval_engine import ApprovalEngine
from changegate.application.checks.executor import CommandExecutor, SubprocessCommandExecutor
from changegate.application.checks.history import CheckHistoryStore
from changegate.application.checks.registry import CheckRegistry, default_registry
from changegate.application.checks.runner import CheckRunner
from changegate.application.config_models import ChangeGateConfig
from changegate.application.project import ProjectLayout
from changegate.application.review_gate import ReviewGate
from changegate.domain.errors import ApprovalBlockedError
from changegate.domain.events.emitter import ChangeEventEmitter
from changegate.domain.models.approval_record import ApprovalRecord, ApprovalStatus
from changegate.domain.models.check_run import CheckRunStatus
from changegate.domain.persistence.record_store import JsonFileRecordStore, RecordStore

logger = logging.getLogger(__name__)


class ReadinessReport(BaseModel):
    """Everything a caller may want to consult before a transition."""

    change_id: str
    blockers: list[str] = Field(default_factory=list)
    approval_status: ApprovalStatus | None = None
    latest_check_status: CheckRunStatus | None = None
    checks_running: bool = False

    @property
    def ready(self) -> bool:
        return not self.blockers


@dataclass
class ChangeOrchestrator:
    """Thin facade wiring the three engines together.

    Only request_approval_with_gate adds behavior; everything else is reached
    through the `approvals`, `reviews` and `checks` attributes.
    """

    approvals: ApprovalEngine
    reviews: ReviewGate
    checks: CheckRunner
    require_review_readiness: bool = True

    @classmethod
    def build(
        cls,
        project: ProjectLayout,
        config: ChangeGateConfig | None = None,
        *,
        store: RecordStore | None = None,
        executor: CommandExecutor | None = None,
        registry: CheckRegistry | None = None,
        event_emitter: ChangeEventEmitter | None = None,
    ) -> "ChangeOrchestrator":
        """Wire default collaborators for a project.

        Args:
            project: Project layout (root and change directories)
            config: Loaded configuration (default: built-in defaults)
            store: Record store (default: JSON files under <root>/openspec)
            executor: Check command executor (default: subprocesses)
            registry: Check registry (default: the process-wide one)
            event_emitter: Shared emitter for all engines
        """
        config = config or ChangeGateConfig()
        store = store or JsonFileRecordStore(project.openspec_dir)
        emitter = event_emitter or ChangeEventEmitter()

        return cls(
            approvals=ApprovalEngine(store=store, event_emitter=emitter),
            reviews=ReviewGate(store=store, event_emitter=emitter),
            checks=CheckRunner(
                project=project,
                history=CheckHistoryStore(store),
                config=config.checks,
                executor=executor or SubprocessCommandExecutor(),
                registry=registry or default_registry,
                event_emitter=emitter,
            ),
            require_review_readiness=config.require_review_readiness,
        )

    @classmethod
    def for_root(cls, root: Path, config: ChangeGateConfig | None = None) -> "ChangeOrchestrator":
        return cls.build(ProjectLayout(root), config)

    def request_approval_with_gate(
        self,
        change_id: str,
        requested_by: str,
        reviewers: list[str] | None = None,
        force: bool = False,
    ) -> ApprovalRecord:
        """Request approval only when no review blocks it.

        Raises:
            ApprovalBlockedError: If readiness reports blockers and neither
                `force` nor a disabled readiness requirement lets it through
        """
        if self.require_review_readiness and not force:
            blockers = self.reviews.check_approval_readiness(change_id)
            if blockers:
                logger.info(f"Approval request for {change_id} blocked: {blockers}")
                raise ApprovalBlockedError(change_id, blockers)
        elif force:
            logger.info(f"Approval request for {change_id} forced past review gate")

        return self.approvals.request_approval(change_id, requested_by, reviewers)

    def get_readiness(self, change_id: str) -> ReadinessReport:
        """Review blockers plus approval and check state; never mutates."""
        record = self.approvals.get_status(change_id)
        latest = self.checks.get_latest_result(change_id)
        return ReadinessReport(
            change_id=change_id,
            blockers=self.reviews.check_approval_readiness(change_id),
            approval_status=record.status if record else None,
            latest_check_status=latest.status if latest else None,
            checks_running=self.checks.is_running(change_id),
        )
