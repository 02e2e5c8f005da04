import click
import logging
from pathlib import Path
from pydantic import BaseModel

from changegate.application.config_loader import load_config
from changegate.application.orchestrator import ChangeOrchestrator
from changegate.application.project import ProjectLayout
from changegate.application.transitions import ApprovalTransitionTable
from changegate.domain.errors import (
    ApprovalBlockedError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
)
from changegate.domain.events.emitter import ChangeEventEmitter
from changegate.domain.models.approval_record import ApprovalRecord
from changegate.domain.models.check_run import CheckRun, CheckRunStatus
from changegate.domain.models.review_comment import (
    ReviewSeverity,
    ReviewStatus,
    ReviewTargetType,
    ReviewType,
)
from changegate.interface.cli.output_models import (
    ApprovalListOutput,
    ApprovalOutput,
    BaseOutput,
    CheckHistoryOutput,
    CheckRunOutput,
    CheckSummaryOutput,
    GateOutput,
    ReadinessOutput,
    ReplyOutput,
    ResolveOutput,
    ReviewListOutput,
    ReviewOutput,
)

logger = logging.getLogger(__name__)

# Exit codes
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_FOUND = 2
EXIT_REFUSED = 3  # invalid state, blocked by reviews, or already running

TARGET_TYPES = click.Choice([t.value for t in ReviewTargetType])
REVIEW_TYPES = click.Choice([t.value for t in ReviewType])
SEVERITIES = click.Choice([s.value for s in ReviewSeverity])
REVIEW_STATUSES = click.Choice([s.value for s in ReviewStatus])


def _json_emit(model: BaseModel) -> None:
    # Single-line JSON, omit None fields (e.g. ApprovalOutput.record on error).
    click.echo(model.model_dump_json(exclude_none=True), nl=True)


def _get_json_mode(ctx: click.Context) -> bool:
    obj = ctx.obj or {}
    return bool(obj.get("json", False))


def _exit_code_for(e: Exception) -> int:
    if isinstance(e, NotFoundError):
        return EXIT_NOT_FOUND
    if isinstance(e, (InvalidStateError, ApprovalBlockedError, ConflictError)):
        return EXIT_REFUSED
    return EXIT_ERROR


def _fail(ctx: click.Context, e: Exception, output: BaseOutput) -> None:
    """Report an error in the active output mode and exit with its code."""
    code = _exit_code_for(e)
    if _get_json_mode(ctx):
        output.exit_code = code
        output.error = str(e)
        _json_emit(output)
    else:
        click.echo(f"Error: {e}", err=True)
    raise click.exceptions.Exit(code)


def _orchestrator(ctx: click.Context) -> ChangeOrchestrator:
    obj = ctx.obj or {}
    root = obj.get("project_root")
    project = ProjectLayout(Path(root)) if root else ProjectLayout.discover()
    config = load_config(project_root=project.root, user_home=Path.home())
    return ChangeOrchestrator.build(
        project,
        config,
        event_emitter=obj.get("event_emitter") or ChangeEventEmitter(),
    )


def _echo_record(record: ApprovalRecord) -> None:
    click.echo(f"change={record.change_id}")
    click.echo(f"status={record.status.value}")
    if record.reviewers:
        approvers = record.approvers()
        marks = [f"{r}{'+' if r in approvers else ''}" for r in record.reviewers]
        click.echo(f"reviewers={','.join(marks)}")
    click.echo(f"approvals={len(record.approvals)}")


def _echo_run(run: CheckRun) -> None:
    click.echo(
        f"run={run.id} status={run.status.value} "
        f"passed={run.summary.passed} failed={run.summary.failed} total={run.summary.total}"
    )
    for check in run.checks:
        line = f"  {check.type}: {check.status.value} ({check.duration_ms}ms)"
        click.echo(line)
        for error in check.errors:
            click.echo(f"    {error}")


@click.group(help="Change lifecycle and quality-gate CLI.")
@click.option("--json", "json_output", is_flag=True, help="Emit machine-readable JSON on stdout.")
@click.option(
    "--project-root",
    "project_root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: nearest ancestor with an openspec/ directory).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log engine activity to stderr.")
@click.pass_context
def cli(ctx: click.Context, json_output: bool, project_root: Path | None, verbose: bool) -> None:
    ctx.ensure_object(dict)
    ctx.obj["json"] = bool(json_output)
    ctx.obj["project_root"] = project_root
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


# ============================================================================
# Approvals
# ============================================================================


@cli.group("approval", help="Approval lifecycle of a change.")
def approval_group() -> None:
    pass


def _approval_command(ctx: click.Context, command: str, change_id: str, action) -> None:
    try:
        record = action(_orchestrator(ctx))
    except Exception as e:
        if isinstance(e, ApprovalBlockedError) and _get_json_mode(ctx):
            _fail(ctx, e, GateOutput(exit_code=EXIT_REFUSED, change_id=change_id, blockers=e.blockers))
        if isinstance(e, ApprovalBlockedError):
            for blocker in e.blockers:
                click.echo(f"blocker: {blocker}", err=True)
        _fail(ctx, e, ApprovalOutput(command=command, exit_code=EXIT_ERROR, change_id=change_id))

    if _get_json_mode(ctx):
        _json_emit(
            ApprovalOutput(
                command=command,
                exit_code=EXIT_OK,
                change_id=change_id,
                record=record,
                valid_commands=ApprovalTransitionTable.valid_commands(record.status),
            )
        )
        return
    _echo_record(record)


@approval_group.command("request")
@click.argument("change_id", type=str)
@click.option("--by", "requested_by", required=True, type=str)
@click.option("--reviewer", "reviewers", multiple=True, type=str, help="Repeat for each reviewer.")
@click.option("--force", is_flag=True, help="Request approval despite open blocking reviews.")
@click.pass_context
def approval_request_cmd(
    ctx: click.Context,
    change_id: str,
    requested_by: str,
    reviewers: tuple[str, ...],
    force: bool,
) -> None:
    _approval_command(
        ctx,
        "approval request",
        change_id,
        lambda o: o.request_approval_with_gate(
            change_id, requested_by, list(reviewers) or None, force=force
        ),
    )


@approval_group.command("approve")
@click.argument("change_id", type=str)
@click.option("--by", "approver", required=True, type=str)
@click.option("--comment", type=str, default=None)
@click.pass_context
def approval_approve_cmd(ctx: click.Context, change_id: str, approver: str, comment: str | None) -> None:
    _approval_command(
        ctx, "approval approve", change_id, lambda o: o.approvals.approve(change_id, approver, comment)
    )


@approval_group.command("reject")
@click.argument("change_id", type=str)
@click.option("--by", "rejector", required=True, type=str)
@click.option("--reason", required=True, type=str)
@click.pass_context
def approval_reject_cmd(ctx: click.Context, change_id: str, rejector: str, reason: str) -> None:
    _approval_command(
        ctx, "approval reject", change_id, lambda o: o.approvals.reject(change_id, rejector, reason)
    )


@approval_group.command("start")
@click.argument("change_id", type=str)
@click.option("--by", "implementer", required=True, type=str)
@click.pass_context
def approval_start_cmd(ctx: click.Context, change_id: str, implementer: str) -> None:
    _approval_command(
        ctx,
        "approval start",
        change_id,
        lambda o: o.approvals.start_implementation(change_id, implementer),
    )


@approval_group.command("complete")
@click.argument("change_id", type=str)
@click.option("--by", "completed_by", required=True, type=str)
@click.pass_context
def approval_complete_cmd(ctx: click.Context, change_id: str, completed_by: str) -> None:
    _approval_command(
        ctx,
        "approval complete",
        change_id,
        lambda o: o.approvals.mark_completed(change_id, completed_by),
    )


@approval_group.command("reset")
@click.argument("change_id", type=str)
@click.option("--by", "reset_by", required=True, type=str)
@click.pass_context
def approval_reset_cmd(ctx: click.Context, change_id: str, reset_by: str) -> None:
    _approval_command(
        ctx, "approval reset", change_id, lambda o: o.approvals.reset_to_draft(change_id, reset_by)
    )


@approval_group.command("status")
@click.argument("change_id", type=str)
@click.pass_context
def approval_status_cmd(ctx: click.Context, change_id: str) -> None:
    try:
        record = _orchestrator(ctx).approvals.get_status(change_id)
    except Exception as e:
        _fail(ctx, e, ApprovalOutput(command="approval status", exit_code=EXIT_ERROR, change_id=change_id))

    if _get_json_mode(ctx):
        _json_emit(
            ApprovalOutput(
                command="approval status",
                exit_code=EXIT_OK,
                change_id=change_id,
                record=record,
                valid_commands=(
                    ApprovalTransitionTable.valid_commands(record.status)
                    if record
                    else list(ApprovalTransitionTable.UNGUARDED_COMMANDS)
                ),
            )
        )
        return

    if record is None:
        click.echo(f"change={change_id}")
        click.echo("status=none")
        return
    _echo_record(record)


@approval_group.command("list")
@click.option("--pending", is_flag=True, help="Only changes awaiting approval.")
@click.pass_context
def approval_list_cmd(ctx: click.Context, pending: bool) -> None:
    try:
        engine = _orchestrator(ctx).approvals
        records = engine.list_pending() if pending else engine.list_all()
    except Exception as e:
        _fail(ctx, e, ApprovalListOutput(exit_code=EXIT_ERROR))

    if _get_json_mode(ctx):
        _json_emit(ApprovalListOutput(exit_code=EXIT_OK, records=records, total=len(records)))
        return

    if not records:
        click.echo("No approval records found.")
        return
    for record in records:
        requested = record.requested_by or "-"
        click.echo(f"{record.change_id:<30} {record.status.value:<18} {requested}")


# ============================================================================
# Reviews
# ============================================================================


@cli.group("review", help="Review comments and approval readiness.")
def review_group() -> None:
    pass


@review_group.command("add")
@click.argument("target_type", type=TARGET_TYPES)
@click.argument("target_id", type=str)
@click.option("--type", "review_type", required=True, type=REVIEW_TYPES)
@click.option("--body", required=True, type=str)
@click.option("--by", "author", required=True, type=str)
@click.option("--line", "line_number", type=int, default=None)
@click.option("--severity", type=SEVERITIES, default=None)
@click.option("--suggested-change", "suggested_change", type=str, default=None)
@click.pass_context
def review_add_cmd(
    ctx: click.Context,
    target_type: str,
    target_id: str,
    review_type: str,
    body: str,
    author: str,
    line_number: int | None,
    severity: str | None,
    suggested_change: str | None,
) -> None:
    try:
        review = _orchestrator(ctx).reviews.add_review(
            ReviewTargetType(target_type),
            target_id,
            type=ReviewType(review_type),
            body=body,
            author=author,
            line_number=line_number,
            severity=ReviewSeverity(severity) if severity else None,
            suggested_change=suggested_change,
        )
    except Exception as e:
        _fail(ctx, e, ReviewOutput(exit_code=EXIT_ERROR))

    if _get_json_mode(ctx):
        _json_emit(ReviewOutput(exit_code=EXIT_OK, review=review))
        return
    click.echo(review.id)


@review_group.command("list")
@click.argument("target_type", type=TARGET_TYPES)
@click.argument("target_id", type=str)
@click.option("--status", type=REVIEW_STATUSES, default=None)
@click.option("--type", "review_type", type=REVIEW_TYPES, default=None)
@click.pass_context
def review_list_cmd(
    ctx: click.Context,
    target_type: str,
    target_id: str,
    status: str | None,
    review_type: str | None,
) -> None:
    try:
        reviews = _orchestrator(ctx).reviews.list_reviews(
            ReviewTargetType(target_type),
            target_id,
            status=ReviewStatus(status) if status else None,
            type=ReviewType(review_type) if review_type else None,
        )
    except Exception as e:
        _fail(ctx, e, ReviewListOutput(exit_code=EXIT_ERROR))

    if _get_json_mode(ctx):
        _json_emit(ReviewListOutput(exit_code=EXIT_OK, reviews=reviews, total=len(reviews)))
        return

    for review in reviews:
        where = f"L{review.line_number}" if review.line_number else "-"
        severity = review.severity.value if review.severity else "-"
        click.echo(
            f"{review.id} {review.status.value:<9} {review.type.value:<10} "
            f"{severity:<6} {where:<6} {review.author}: {review.body}"
        )


@review_group.command("reply")
@click.argument("target_type", type=TARGET_TYPES)
@click.argument("target_id", type=str)
@click.argument("review_id", type=str)
@click.option("--by", "author", required=True, type=str)
@click.option("--body", required=True, type=str)
@click.pass_context
def review_reply_cmd(
    ctx: click.Context,
    target_type: str,
    target_id: str,
    review_id: str,
    author: str,
    body: str,
) -> None:
    try:
        reply = _orchestrator(ctx).reviews.add_reply(
            ReviewTargetType(target_type), target_id, review_id, author, body
        )
        if reply is None:
            raise NotFoundError("review", review_id)
    except Exception as e:
        _fail(ctx, e, ReplyOutput(exit_code=EXIT_ERROR, review_id=review_id))

    if _get_json_mode(ctx):
        _json_emit(ReplyOutput(exit_code=EXIT_OK, review_id=review_id, reply=reply))
        return
    click.echo(reply.id)


@review_group.command("resolve")
@click.argument("target_type", type=TARGET_TYPES)
@click.argument("target_id", type=str)
@click.argument("review_id", type=str)
@click.option("--by", "resolved_by", required=True, type=str)
@click.option("--wont-fix", "wont_fix", is_flag=True, help="Close as won't fix instead of resolved.")
@click.pass_context
def review_resolve_cmd(
    ctx: click.Context,
    target_type: str,
    target_id: str,
    review_id: str,
    resolved_by: str,
    wont_fix: bool,
) -> None:
    status = ReviewStatus.WONT_FIX if wont_fix else ReviewStatus.RESOLVED
    try:
        resolved = _orchestrator(ctx).reviews.resolve_review(
            ReviewTargetType(target_type), target_id, review_id, resolved_by, status
        )
        if not resolved:
            raise NotFoundError("review", review_id)
    except Exception as e:
        _fail(ctx, e, ResolveOutput(exit_code=EXIT_ERROR, review_id=review_id))

    if _get_json_mode(ctx):
        _json_emit(ResolveOutput(exit_code=EXIT_OK, review_id=review_id, resolved=True))
        return
    click.echo(f"{review_id} {status.value}")


@review_group.command("readiness")
@click.argument("change_id", type=str)
@click.pass_context
def review_readiness_cmd(ctx: click.Context, change_id: str) -> None:
    try:
        blockers = _orchestrator(ctx).reviews.check_approval_readiness(change_id)
    except Exception as e:
        _fail(ctx, e, ReadinessOutput(exit_code=EXIT_ERROR, change_id=change_id))

    exit_code = EXIT_REFUSED if blockers else EXIT_OK
    if _get_json_mode(ctx):
        _json_emit(
            ReadinessOutput(
                exit_code=exit_code,
                change_id=change_id,
                ready=not blockers,
                blockers=blockers,
            )
        )
        raise click.exceptions.Exit(exit_code)

    if not blockers:
        click.echo("ready")
        return
    for blocker in blockers:
        click.echo(f"blocker: {blocker}")
    raise click.exceptions.Exit(exit_code)


# ============================================================================
# Checks
# ============================================================================


@cli.group("checks", help="Quality checks for a change.")
def checks_group() -> None:
    pass


@checks_group.command("run")
@click.argument("change_id", type=str)
@click.option("--check", "checks", multiple=True, type=str, help="Repeat in run order (default: configured).")
@click.option("--events", is_flag=True, help="Emit check events to stderr.")
@click.pass_context
def checks_run_cmd(ctx: click.Context, change_id: str, checks: tuple[str, ...], events: bool) -> None:
    try:
        emitter = ChangeEventEmitter()
        if events:
            from changegate.domain.events.stderr_observer import StderrEventObserver
            emitter.subscribe(StderrEventObserver())
        ctx.obj["event_emitter"] = emitter

        run = _orchestrator(ctx).checks.run_checks(change_id, list(checks) or None)
    except Exception as e:
        _fail(ctx, e, CheckRunOutput(command="checks run", exit_code=EXIT_ERROR, change_id=change_id))

    exit_code = EXIT_OK if run.status == CheckRunStatus.PASSED else EXIT_ERROR
    if _get_json_mode(ctx):
        _json_emit(CheckRunOutput(command="checks run", exit_code=exit_code, change_id=change_id, run=run))
        raise click.exceptions.Exit(exit_code)

    _echo_run(run)
    raise click.exceptions.Exit(exit_code)


@checks_group.command("status")
@click.argument("change_id", type=str)
@click.pass_context
def checks_status_cmd(ctx: click.Context, change_id: str) -> None:
    try:
        run = _orchestrator(ctx).checks.get_check_status(change_id)
    except Exception as e:
        _fail(ctx, e, CheckRunOutput(command="checks status", exit_code=EXIT_ERROR, change_id=change_id))

    if _get_json_mode(ctx):
        _json_emit(CheckRunOutput(command="checks status", exit_code=EXIT_OK, change_id=change_id, run=run))
        return

    if run is None:
        click.echo(f"status={CheckRunStatus.PENDING.value}")
        return
    _echo_run(run)


@checks_group.command("history")
@click.argument("change_id", type=str)
@click.option("--limit", type=click.IntRange(min=1), default=10, show_default=True)
@click.pass_context
def checks_history_cmd(ctx: click.Context, change_id: str, limit: int) -> None:
    try:
        runs = _orchestrator(ctx).checks.get_check_history(change_id, limit)
    except Exception as e:
        _fail(ctx, e, CheckHistoryOutput(exit_code=EXIT_ERROR, change_id=change_id))

    if _get_json_mode(ctx):
        _json_emit(CheckHistoryOutput(exit_code=EXIT_OK, change_id=change_id, runs=runs, total=len(runs)))
        return

    for run in runs:
        completed = run.completed_at.isoformat() if run.completed_at else "-"
        click.echo(
            f"{run.id} {run.status.value:<8} {completed} "
            f"passed={run.summary.passed} failed={run.summary.failed}"
        )


@checks_group.command("summary")
@click.pass_context
def checks_summary_cmd(ctx: click.Context) -> None:
    try:
        report = _orchestrator(ctx).checks.get_check_summary()
    except Exception as e:
        _fail(ctx, e, CheckSummaryOutput(exit_code=EXIT_ERROR))

    if _get_json_mode(ctx):
        _json_emit(CheckSummaryOutput(exit_code=EXIT_OK, report=report))
        return

    click.echo(
        f"total={report.total} passed={report.passed} "
        f"failed={report.failed} running={report.running}"
    )
    for change in report.changes:
        last_run = change.last_run.isoformat() if change.last_run else "-"
        click.echo(f"  {change.name:<30} {change.status.value:<8} {last_run}")


def main() -> None:
    cli(obj={})
