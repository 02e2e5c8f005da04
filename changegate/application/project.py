"""Project root resolution and change existence.

The change gate does not own change documents; it only needs to know where the
project lives and whether a change directory exists.
"""

from pathlib import Path
from typing import Protocol

from changegate.domain.constants import CHANGES_DIRNAME, OPENSPEC_DIRNAME
from changegate.domain.validation.id_validator import ensure_safe_id


class ChangeLocator(Protocol):
    """Collaborator contract supplied by the surrounding project layer."""

    @property
    def root(self) -> Path:
        ...

    def change_exists(self, change_id: str) -> bool:
        ...

    def list_changes(self) -> list[str]:
        ...


class ProjectLayout:
    """Filesystem layout: <root>/openspec/changes/<change_id>/."""

    def __init__(self, root: Path) -> None:
        self._root = root.resolve()

    @classmethod
    def discover(cls, start: Path | None = None) -> "ProjectLayout":
        """Walk up from start (default: cwd) to the first directory holding openspec/.

        Falls back to start itself when no ancestor has one.
        """
        start = (start or Path.cwd()).resolve()
        for candidate in (start, *start.parents):
            if (candidate / OPENSPEC_DIRNAME).is_dir():
                return cls(candidate)
        return cls(start)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def openspec_dir(self) -> Path:
        return self._root / OPENSPEC_DIRNAME

    @property
    def changes_dir(self) -> Path:
        return self.openspec_dir / CHANGES_DIRNAME

    def change_dir(self, change_id: str) -> Path:
        return self.changes_dir / ensure_safe_id(change_id)

    def change_exists(self, change_id: str) -> bool:
        return self.change_dir(change_id).is_dir()

    def list_changes(self) -> list[str]:
        if not self.changes_dir.is_dir():
            return []
        return sorted(p.name for p in self.changes_dir.iterdir() if p.is_dir())
