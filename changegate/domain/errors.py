"""Domain-level exceptions for the change gate."""


class ChangeGateError(Exception):
    """Base class for all change gate errors."""

    pass


class NotFoundError(ChangeGateError):
    """Raised when no record exists for the requested key."""

    def __init__(self, kind: str, key: str) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"No {kind} found for: {key}")


class InvalidStateError(ChangeGateError):
    """Raised when a command is not valid for the current approval status."""

    def __init__(self, command: str, current_status: str, required_status: str) -> None:
        self.command = command
        self.current_status = current_status
        self.required_status = required_status
        super().__init__(
            f"Cannot {command} change in status: {current_status}. "
            f"Must be {required_status}."
        )


class ConflictError(ChangeGateError):
    """Raised when a check run is requested while one is already active."""

    def __init__(self, change_id: str) -> None:
        self.change_id = change_id
        super().__init__(f"A check run is already running for change: {change_id}")


class ApprovalBlockedError(ChangeGateError):
    """Raised when a gated approval request is refused by open reviews."""

    def __init__(self, change_id: str, blockers: list[str]) -> None:
        self.change_id = change_id
        self.blockers = list(blockers)
        super().__init__(
            f"Change '{change_id}' is not ready for approval: " + "; ".join(self.blockers)
        )


class InvalidIdError(ChangeGateError, ValueError):
    """Raised when an identifier is empty or could escape its storage directory."""

    pass


class StoreError(ChangeGateError):
    """Raised when a stored record exists but cannot be decoded."""

    pass
