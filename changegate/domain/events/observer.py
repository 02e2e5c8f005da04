"""Change observer protocol."""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from changegate.domain.events.event import ChangeEvent


class ChangeObserver(Protocol):
    """Protocol for change event observers."""

    def on_event(self, event: "ChangeEvent") -> None:
        """Handle a change event. Must not throw or block."""
        ...
