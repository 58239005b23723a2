"""Core systems: event bus and presentation flow state."""

from slotflow.core.events import Event, EventBus, EventType
from slotflow.core.state import FlowContext, FlowPhase, FlowStateMachine

__all__ = [
    "Event",
    "EventBus",
    "EventType",
    "FlowContext",
    "FlowPhase",
    "FlowStateMachine",
]
