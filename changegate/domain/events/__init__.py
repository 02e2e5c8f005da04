"""Change event system for observer pattern notifications."""

from changegate.domain.events.event_types import ChangeEventType
from changegate.domain.events.event import ChangeEvent
from changegate.domain.events.observer import ChangeObserver
from changegate.domain.events.emitter import ChangeEventEmitter
from changegate.domain.events.stderr_observer import StderrEventObserver

__all__ = [
    "ChangeEventType",
    "ChangeEvent",
    "ChangeObserver",
    "ChangeEventEmitter",
    "StderrEventObserver",
]
