"""Process-wide registry of in-flight check runs.

Lifecycle:
- one registry per process (see `default_registry`), created at import
- an entry is inserted when a run starts and removed when it ends, whatever
  the outcome, by the `claim` context manager
- the entry's token is the only way to cancel a run
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from changegate.domain.errors import ConflictError

logger = logging.getLogger(__name__)


@dataclass
class CancellationToken:
    """Cooperative cancellation flag polled between checks."""

    aborted: bool = False

    def abort(self) -> None:
        self.aborted = True


class CheckRegistry:
    """Map of change id -> cancellation token; at most one run per change."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._running: dict[str, CancellationToken] = {}

    @contextmanager
    def claim(self, change_id: str) -> Iterator[CancellationToken]:
        """Register a run for change_id for the duration of the block.

        Raises:
            ConflictError: If a run is already registered for change_id
        """
        token = CancellationToken()
        with self._lock:
            if change_id in self._running:
                raise ConflictError(change_id)
            self._running[change_id] = token
        logger.debug(f"Registered check run for {change_id}")

        try:
            yield token
        finally:
            with self._lock:
                # Only drop our own token
                if self._running.get(change_id) is token:
                    del self._running[change_id]
            logger.debug(f"Released check run for {change_id}")

    def cancel(self, change_id: str) -> bool:
        """Flag the run for change_id to stop. Returns False if none is running."""
        with self._lock:
            token = self._running.get(change_id)
        if token is None:
            return False
        token.abort()
        return True

    def is_running(self, change_id: str) -> bool:
        with self._lock:
            return change_id in self._running

    def running_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._running)


default_registry = CheckRegistry()
