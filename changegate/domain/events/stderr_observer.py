"""Stderr event observer for CLI integration."""

import click

from changegate.domain.events.event import ChangeEvent


class StderrEventObserver:
    """Emits events as structured lines to stderr."""

    def on_event(self, event: ChangeEvent) -> None:
        """Emit event as structured line to stderr."""
        parts = [f"[EVENT] {event.event_type.value}", f"change={event.change_id}"]
        if event.status:
            parts.append(f"status={event.status}")
        if event.actor:
            parts.append(f"by={event.actor}")
        for key, value in sorted(event.metadata.items()):
            parts.append(f"{key}={value}")
        click.echo(" ".join(parts), err=True)
