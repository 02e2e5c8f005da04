"""In-process dispatch of change events.

Observers run synchronously on the thread that emitted the event, in
subscription order. A failing observer is logged and skipped; it never fails
the engine operation that produced the event.
"""

import logging
from dataclasses import dataclass

from changegate.domain.events.event import ChangeEvent
from changegate.domain.events.event_types import ChangeEventType
from changegate.domain.events.observer import ChangeObserver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Subscription:
    observer: ChangeObserver
    # None means every event type
    event_types: frozenset[ChangeEventType] | None

    def wants(self, event_type: ChangeEventType) -> bool:
        return self.event_types is None or event_type in self.event_types


class ChangeEventEmitter:
    """Fan-out point shared by the approval engine, review gate and check runner."""

    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []

    def subscribe(
        self,
        observer: ChangeObserver,
        event_types: list[ChangeEventType] | None = None,
    ) -> None:
        """Register observer for the given event types (all types if None)."""
        types = frozenset(event_types) if event_types is not None else None
        self._subscriptions.append(_Subscription(observer, types))

    def unsubscribe(self, observer: ChangeObserver) -> None:
        """Drop every subscription held by observer."""
        self._subscriptions = [s for s in self._subscriptions if s.observer is not observer]

    def emit(self, event: ChangeEvent) -> None:
        for subscription in list(self._subscriptions):
            if not subscription.wants(event.event_type):
                continue
            try:
                subscription.observer.on_event(event)
            except Exception as e:
                logger.warning(
                    f"Observer {subscription.observer!r} failed on "
                    f"{event.event_type.value} for {event.change_id}: {e}"
                )
