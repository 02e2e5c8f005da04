"""Append-only history of completed check runs.

Each run is its own record under qa/<change_id>/<completed timestamp>_<run id>,
so "most recent N" is a reverse key sort and earlier runs are never rewritten.
"""

import logging
from datetime import timezone

from pydantic import ValidationError

from changegate.domain.constants import CHECK_HISTORY_PREFIX
from changegate.domain.errors import StoreError
from changegate.domain.models.check_run import CheckRun
from changegate.domain.persistence.record_store import RecordStore
from changegate.domain.validation.id_validator import ensure_safe_id

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S-%fZ"


class CheckHistoryStore:
    """Check run history on top of a RecordStore."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def append(self, run: CheckRun) -> str:
        """Persist a completed run as a new record.

        Returns:
            The key the run was stored under

        Raises:
            ValueError: If the run has not completed
        """
        if run.completed_at is None:
            raise ValueError("Only completed check runs can be stored")

        stamp = run.completed_at.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)
        key = f"{self._prefix(run.change_id)}{stamp}_{run.id}"
        self.store.put(key, run.model_dump(mode="json"))
        logger.debug(f"Stored check run {run.id} for {run.change_id} at {key}")
        return key

    def history(self, change_id: str, limit: int = 10) -> list[CheckRun]:
        """Most recent runs first; unreadable entries are skipped."""
        if limit <= 0:
            return []

        runs: list[CheckRun] = []
        for key in reversed(self.store.list_keys(self._prefix(change_id))):
            try:
                data = self.store.get(key)
                if data is None:
                    continue
                runs.append(CheckRun.model_validate(data))
            except (StoreError, ValidationError) as e:
                logger.warning(f"Skipping unreadable check run {key}: {e}")
                continue
            if len(runs) >= limit:
                break
        return runs

    def latest(self, change_id: str) -> CheckRun | None:
        runs = self.history(change_id, limit=1)
        return runs[0] if runs else None

    @staticmethod
    def _prefix(change_id: str) -> str:
        return f"{CHECK_HISTORY_PREFIX}/{ensure_safe_id(change_id)}/"
