"""Runs an ordered list of named checks against a change.

Checks execute strictly one after another. Two independent stop mechanisms:
- each check has its own timeout; a timed-out check is recorded as TIMEOUT
  and the run moves on to the next check
- stop_checks() sets a cooperative flag that is only polled before each
  check starts. A check that is already executing cannot be interrupted; the
  run stops once it finishes (or hits its own timeout). A stop that arrives
  while the last check is executing finds no later check to skip, so the run
  ends as passed or failed rather than stopped.

A run is persisted once, after it ends. Its partial results are not visible
in history while it is in flight; is_running() reports that it exists.
"""

import logging
from dataclasses import dataclass, field

from changegate.application.checks.classifier import classify
from changegate.application.checks.executor import CommandExecutor, SubprocessCommandExecutor
from changegate.application.checks.history import CheckHistoryStore
from changegate.application.checks.registry import CheckRegistry, default_registry
from changegate.application.config_models import CheckConfig
from changegate.application.project import ChangeLocator
from changegate.domain.errors import NotFoundError
from changegate.domain.events.emitter import ChangeEventEmitter
from changegate.domain.events.event import ChangeEvent
from changegate.domain.events.event_types import ChangeEventType
from changegate.domain.models.approval_record import utcnow
from changegate.domain.models.check_run import (
    ChangeCheckState,
    CheckResult,
    CheckResultStatus,
    CheckRun,
    CheckRunStatus,
    CheckRunSummary,
    CheckSummaryReport,
)
from changegate.domain.validation.id_validator import ensure_safe_id

logger = logging.getLogger(__name__)


@dataclass
class CheckRunner:
    """Quality-check engine for changes in one project."""

    project: ChangeLocator
    history: CheckHistoryStore
    config: CheckConfig = field(default_factory=CheckConfig)
    executor: CommandExecutor = field(default_factory=SubprocessCommandExecutor)
    registry: CheckRegistry = field(default_factory=lambda: default_registry)
    event_emitter: ChangeEventEmitter = field(default_factory=ChangeEventEmitter)

    def run_checks(self, change_id: str, checks: list[str] | None = None) -> CheckRun:
        """Run checks (default: configured defaults) for a change and persist the run.

        Blocks until every check has finished or the run was stopped.

        Args:
            change_id: The change to check
            checks: Ordered check names

        Returns:
            The completed run

        Raises:
            InvalidIdError: If change_id is unsafe
            NotFoundError: If the change directory does not exist
            ValueError: If a check name has no command configured
            ConflictError: If a run for this change is already in flight
        """
        change_id = ensure_safe_id(change_id)
        if not self.project.change_exists(change_id):
            raise NotFoundError("change", change_id)

        checks_to_run = list(checks) if checks is not None else list(self.config.defaults)
        commands = self._resolve_commands(checks_to_run)

        with self.registry.claim(change_id) as token:
            run = CheckRun(
                change_id=change_id,
                status=CheckRunStatus.RUNNING,
                summary=CheckRunSummary(total=len(checks_to_run)),
            )
            logger.info(f"Starting check run {run.id} for {change_id}: {checks_to_run}")
            self._emit(ChangeEventType.CHECKS_STARTED, run, {"checks": ",".join(checks_to_run)})

            try:
                for check_type, command in commands:
                    if token.aborted:
                        run.status = CheckRunStatus.STOPPED
                        break

                    result = self._run_check(check_type, command)
                    run.checks.append(result)
                    run.summary.record(result)
                    self._emit(
                        ChangeEventType.CHECK_FINISHED,
                        run,
                        {"check": check_type, "result": result.status.value},
                    )

                if run.status != CheckRunStatus.STOPPED:
                    run.status = (
                        CheckRunStatus.FAILED if run.summary.failed > 0 else CheckRunStatus.PASSED
                    )
            finally:
                run.completed_at = utcnow()

        logger.info(
            f"Check run {run.id} for {change_id} finished: {run.status.value} "
            f"({run.summary.passed} passed, {run.summary.failed} failed)"
        )
        self._persist(run)

        event_type = (
            ChangeEventType.CHECKS_STOPPED
            if run.status == CheckRunStatus.STOPPED
            else ChangeEventType.CHECKS_COMPLETED
        )
        self._emit(event_type, run, {"passed": run.summary.passed, "failed": run.summary.failed})
        return run

    def stop_checks(self, change_id: str) -> bool:
        """Ask the in-flight run for change_id to stop before its next check.

        Returns:
            True if a run was in flight, False otherwise
        """
        stopped = self.registry.cancel(ensure_safe_id(change_id))
        if stopped:
            logger.info(f"Stop requested for check run of {change_id}")
        return stopped

    def is_running(self, change_id: str) -> bool:
        return self.registry.is_running(ensure_safe_id(change_id))

    def get_latest_result(self, change_id: str) -> CheckRun | None:
        return self.history.latest(change_id)

    def get_check_status(self, change_id: str) -> CheckRun | None:
        """Latest completed run, or None if the change was never checked."""
        return self.get_latest_result(change_id)

    def get_check_history(self, change_id: str, limit: int = 10) -> list[CheckRun]:
        """Completed runs, most recent first."""
        return self.history.history(change_id, limit)

    def get_check_summary(self) -> CheckSummaryReport:
        """Latest run status of every change in the project."""
        report = CheckSummaryReport()
        for change_id in self.project.list_changes():
            report.total += 1
            if self.registry.is_running(change_id):
                report.running += 1
                report.changes.append(
                    ChangeCheckState(name=change_id, status=CheckRunStatus.RUNNING)
                )
                continue

            latest = self.history.latest(change_id)
            if latest is None:
                report.changes.append(
                    ChangeCheckState(name=change_id, status=CheckRunStatus.PENDING)
                )
                continue

            if latest.status == CheckRunStatus.PASSED:
                report.passed += 1
            elif latest.status == CheckRunStatus.FAILED:
                report.failed += 1
            report.changes.append(
                ChangeCheckState(
                    name=change_id, status=latest.status, last_run=latest.completed_at
                )
            )
        return report

    def _resolve_commands(self, checks: list[str]) -> list[tuple[str, str]]:
        resolved = []
        for check_type in checks:
            command = self.config.command_for(check_type)
            if command is None:
                available = ", ".join(self.config.known_checks())
                raise ValueError(
                    f"No command configured for check '{check_type}'. "
                    f"Available checks: {available}"
                )
            resolved.append((check_type, command))
        return resolved

    def _run_check(self, check_type: str, command: str) -> CheckResult:
        timeout = self.config.timeout_seconds
        outcome = self.executor.run(command, self.project.root, timeout)
        result = classify(
            check_type,
            outcome,
            timeout,
            strict_exit_code=self.config.strict_exit_code,
            max_output_chars=self.config.max_output_chars,
            max_error_output_chars=self.config.max_error_output_chars,
        )
        if result.status != CheckResultStatus.PASSED:
            logger.info(f"Check {check_type} {result.status.value}: {result.errors}")
        return result

    def _persist(self, run: CheckRun) -> None:
        # Write failures are logged only; the returned run is unchanged
        try:
            self.history.append(run)
        except Exception as e:
            logger.error(f"Failed to store check run {run.id} for {run.change_id}: {e}")

    def _emit(self, event_type: ChangeEventType, run: CheckRun, metadata: dict) -> None:
        self.event_emitter.emit(
            ChangeEvent(
                event_type=event_type,
                change_id=run.change_id,
                status=run.status.value,
                metadata={"run_id": run.id, **metadata},
            )
        )
