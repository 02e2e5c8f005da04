"""Check execution: registry, executors, classification, history and runner."""

from changegate.application.checks.executor import (
    CommandExecutor,
    CommandOutcome,
    SubprocessCommandExecutor,
)
from changegate.application.checks.history import CheckHistoryStore
from changegate.application.checks.registry import (
    CancellationToken,
    CheckRegistry,
    default_registry,
)
from changegate.application.checks.runner import CheckRunner

__all__ = [
    "CommandExecutor",
    "CommandOutcome",
    "SubprocessCommandExecutor",
    "CheckHistoryStore",
    "CancellationToken",
    "CheckRegistry",
    "default_registry",
    "CheckRunner",
]
