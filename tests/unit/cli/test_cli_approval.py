import json

from changegate.interface.cli.cli import EXIT_NOT_FOUND, EXIT_OK, EXIT_REFUSED


def _parse(result) -> dict:
    assert result.output.count("\n") == 1
    return json.loads(result.output)


def test_request_and_status_text(invoke) -> None:
    result = invoke("approval", "request", "c1", "--by", "alice", "--reviewer", "r1", "--reviewer", "r2")

    assert result.exit_code == EXIT_OK
    assert "status=pending_approval" in result.output
    assert "reviewers=r1,r2" in result.output

    invoke("approval", "approve", "c1", "--by", "r1")
    status = invoke("approval", "status", "c1")

    assert "status=pending_approval" in status.output
    assert "reviewers=r1+,r2" in status.output


def test_full_lifecycle_json(invoke) -> None:
    invoke("approval", "request", "c1", "--by", "alice")

    approved = _parse(invoke("approval", "approve", "c1", "--by", "bob", "--comment", "LGTM", json_mode=True))
    assert approved["command"] == "approval approve"
    assert approved["exit_code"] == EXIT_OK
    assert approved["record"]["status"] == "approved"
    assert approved["valid_commands"] == ["request_approval", "reset_to_draft", "start_implementation"]

    started = _parse(invoke("approval", "start", "c1", "--by", "dev", json_mode=True))
    assert started["record"]["status"] == "implementing"

    completed = _parse(invoke("approval", "complete", "c1", "--by", "dev", json_mode=True))
    assert completed["record"]["status"] == "completed"
    assert [h["action"] for h in completed["record"]["history"]] == [
        "request_approval",
        "approved",
        "start_implementation",
        "completed",
    ]


def test_approve_without_record_is_not_found(invoke) -> None:
    result = invoke("approval", "approve", "c1", "--by", "bob", json_mode=True)

    assert result.exit_code == EXIT_NOT_FOUND
    payload = _parse(result)
    assert payload["exit_code"] == EXIT_NOT_FOUND
    assert "record" not in payload
    assert "No approval record found" in payload["error"]


def test_approve_in_wrong_state_is_refused(invoke) -> None:
    invoke("approval", "reset", "c1", "--by", "alice")

    result = invoke("approval", "approve", "c1", "--by", "bob")

    assert result.exit_code == EXIT_REFUSED
    assert "Cannot approve change in status: draft" in result.output


def test_reject_then_reset_and_resubmit(invoke) -> None:
    invoke("approval", "request", "c1", "--by", "alice")

    rejected = invoke("approval", "reject", "c1", "--by", "bob", "--reason", "Too big")
    assert rejected.exit_code == EXIT_OK
    assert "status=rejected" in rejected.output

    invoke("approval", "reset", "c1", "--by", "alice")
    resubmitted = invoke("approval", "request", "c1", "--by", "alice")
    assert "status=pending_approval" in resubmitted.output


def test_reject_requires_reason_option(invoke) -> None:
    invoke("approval", "request", "c1", "--by", "alice")
    result = invoke("approval", "reject", "c1", "--by", "bob")
    assert result.exit_code == 2
    assert "--reason" in result.output


def test_request_blocked_by_reviews(invoke) -> None:
    invoke("review", "add", "proposal", "c1", "--type", "question", "--body", "Why?", "--by", "rev")

    result = invoke("approval", "request", "c1", "--by", "alice", json_mode=True)

    assert result.exit_code == EXIT_REFUSED
    payload = _parse(result)
    assert payload["blockers"] == ["1 question(s) need to be answered"]

    status = _parse(invoke("approval", "status", "c1", json_mode=True))
    assert "record" not in status
    assert status["valid_commands"] == ["request_approval", "reset_to_draft"]


def test_force_bypasses_review_gate(invoke) -> None:
    invoke("review", "add", "proposal", "c1", "--type", "question", "--body", "Why?", "--by", "rev")

    result = invoke("approval", "request", "c1", "--by", "alice", "--force")

    assert result.exit_code == EXIT_OK
    assert "status=pending_approval" in result.output


def test_review_gate_disabled_by_project_config(invoke, cli_root) -> None:
    config = cli_root / ".changegate" / "config.yml"
    config.parent.mkdir()
    config.write_text("require_review_readiness: false\n", encoding="utf-8")
    invoke("review", "add", "proposal", "c1", "--type", "question", "--body", "Why?", "--by", "rev")

    assert invoke("approval", "request", "c1", "--by", "alice").exit_code == EXIT_OK


def test_list_and_pending(invoke) -> None:
    invoke("approval", "request", "c1", "--by", "alice")
    invoke("approval", "reset", "c2", "--by", "alice")

    all_records = _parse(invoke("approval", "list", json_mode=True))
    pending = _parse(invoke("approval", "list", "--pending", json_mode=True))

    assert all_records["total"] == 2
    assert [r["change_id"] for r in pending["records"]] == ["c1"]


def test_list_empty_text(invoke) -> None:
    result = invoke("approval", "list")
    assert result.exit_code == EXIT_OK
    assert "No approval records found." in result.output


def test_status_unknown_change_text(invoke) -> None:
    result = invoke("approval", "status", "nope")
    assert result.exit_code == EXIT_OK
    assert "status=none" in result.output


def test_unsafe_change_id_is_error(invoke) -> None:
    result = invoke("approval", "request", "../x", "--by", "alice")
    assert result.exit_code == 1
    assert "Invalid id" in result.output


def test_records_live_under_openspec(invoke, cli_root) -> None:
    invoke("approval", "request", "c1", "--by", "alice")
    assert (cli_root / "openspec" / "approvals" / "c1.json").exists()
