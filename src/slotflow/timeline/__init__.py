"""Cancellable timeline: actions, builder and runner."""

from slotflow.timeline.cancellation import (
    CancellationToken,
    OperationCancelled,
    cancellable_sleep,
)
from slotflow.timeline.actions import (
    ActionType,
    CallbackAction,
    ConditionalAction,
    DelayAction,
    LoopAction,
    ParallelAction,
    SequenceAction,
    TimelineAction,
)
from slotflow.timeline.builder import SequenceBuilder
from slotflow.timeline.runner import TimelineConfig, TimelineRunner, TimelineState

__all__ = [
    "ActionType",
    "CallbackAction",
    "CancellationToken",
    "ConditionalAction",
    "DelayAction",
    "LoopAction",
    "OperationCancelled",
    "ParallelAction",
    "SequenceAction",
    "SequenceBuilder",
    "TimelineAction",
    "TimelineConfig",
    "TimelineRunner",
    "TimelineState",
    "cancellable_sleep",
]
