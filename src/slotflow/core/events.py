"""
Event bus for presentation facts.

Milestone facts are immutable, past-tense notifications for observers
(HUD, audio, analytics). The pipeline never reads them back for its own
sequencing; the only inbound facts it listens to are feature start/end.
"""

from dataclasses import dataclass, field
from typing import Any, Callable
from enum import Enum
import logging
import time
from collections import defaultdict

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Built-in fact names."""
    # Step facts
    STEP_PRESENTED = "step-presented"
    STEP_GRID_COMMITTED = "step-grid-committed"
    SEQUENCE_COMPLETED = "sequence-completed"

    # Win facts
    WIN_DETECTED = "win-detected"
    WIN_INTERRUPTED = "win-interrupted"
    WIN_TIER_RESOLVED = "win-tier-resolved"
    WIN_PRESENTATION_STARTED = "win-presentation-started"
    WIN_PRESENTATION_COMPLETED = "win-presentation-completed"
    GAME_WIN = "game-win"
    BIG_WIN_SHOW = "big-win-show"
    WIN_COUNTER_START = "win-counter-start"

    # Flow facts
    PRESENTATION_COMPLETED = "presentation-completed"
    DATA_FINALIZED = "data-finalized"

    # Inbound feature facts
    FEATURE_STARTED = "feature-started"
    FEATURE_ENDED = "feature-ended"


@dataclass(frozen=True)
class Event:
    """
    Event data container.

    Attributes:
        type: Event type (EventType enum or custom string)
        data: Event payload
        source: Component that emitted the event
        timestamp: Wall-clock time the event was created
    """
    type: EventType | str
    data: dict[str, Any] = field(default_factory=dict)
    source: str = "system"
    timestamp: float = field(default_factory=time.time)


Handler = Callable[[Event], None]


class EventBus:
    """
    Event bus for component communication.

    Handlers run synchronously, in subscription order. Instances are
    passed to the components that need them; there is no global bus.
    """

    def __init__(self, history_limit: int = 100) -> None:
        self._handlers: dict[EventType | str, list[Handler]] = defaultdict(list)
        self._global_handlers: list[Handler] = []
        self._event_history: list[Event] = []
        self._history_limit = history_limit

    def subscribe(
        self,
        event_type: EventType | str,
        handler: Handler
    ) -> Callable[[], None]:
        """
        Subscribe to an event type.

        Args:
            event_type: Type of event to listen for
            handler: Callback function

        Returns:
            Unsubscribe function
        """
        self._handlers[event_type].append(handler)
        logger.debug(f"Handler subscribed to {event_type}")

        def unsubscribe() -> None:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)
                logger.debug(f"Handler unsubscribed from {event_type}")

        return unsubscribe

    def subscribe_all(self, handler: Handler) -> Callable[[], None]:
        """
        Subscribe to all events.

        Args:
            handler: Callback function

        Returns:
            Unsubscribe function
        """
        self._global_handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._global_handlers:
                self._global_handlers.remove(handler)

        return unsubscribe

    def handler_count(self, event_type: EventType | str | None = None) -> int:
        """Number of handlers for a type, or of all handlers when None."""
        if event_type is None:
            return sum(len(h) for h in self._handlers.values()) + len(self._global_handlers)
        return len(self._handlers.get(event_type, []))

    def emit(self, event: Event) -> None:
        """Record an event and deliver it to every matching handler."""
        self._add_to_history(event)
        handlers = self._handlers.get(event.type, []) + self._global_handlers

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.type}: {e}")

    def _add_to_history(self, event: Event) -> None:
        """Add event to history, maintaining limit."""
        self._event_history.append(event)
        if len(self._event_history) > self._history_limit:
            self._event_history.pop(0)

    def get_history(
        self,
        event_type: EventType | str | None = None,
        limit: int = 10
    ) -> list[Event]:
        """Get recent events from history."""
        history = self._event_history
        if event_type is not None:
            history = [e for e in history if e.type == event_type]
        return history[-limit:]

    def clear_history(self) -> None:
        """Clear event history."""
        self._event_history.clear()

    def clear(self) -> None:
        """Drop every subscription and the history."""
        self._handlers.clear()
        self._global_handlers.clear()
        self._event_history.clear()


# Convenience functions for creating common events
def feature_started_event(
    result_flow_id: str | None = None,
    spin_id: str | None = None,
    source: str = "feature",
    **data: Any,
) -> Event:
    """Create a feature-started event scoped to a flow and/or spin."""
    payload = dict(data)
    if result_flow_id is not None:
        payload["result_flow_id"] = result_flow_id
    if spin_id is not None:
        payload["spin_id"] = spin_id
    return Event(EventType.FEATURE_STARTED, data=payload, source=source)


def feature_ended_event(
    result_flow_id: str | None = None,
    spin_id: str | None = None,
    source: str = "feature",
    **data: Any,
) -> Event:
    """Create a feature-ended event scoped to a flow and/or spin."""
    payload = dict(data)
    if result_flow_id is not None:
        payload["result_flow_id"] = result_flow_id
    if spin_id is not None:
        payload["spin_id"] = spin_id
    return Event(EventType.FEATURE_ENDED, data=payload, source=source)
