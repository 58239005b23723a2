"""
State machine for the result presentation flow.

Phases:
    IDLE: No spin result being presented
    PRESENTING_STEPS: Step presenter is running RESULT/CASCADE steps
    SEQUENCE_COMPLETE: All steps presented, sequence-completed emitted
    AWAITING_TRIGGER: Waiting for the configured win-presentation trigger
    WIN_PRESENTATION: Tier resolved, win presentation holding
    COUNT_UP: Waiting out the total-win counter
    COMPLETED: presentation-completed emitted
    CANCELLED: Flow cancelled or superseded by a newer spin
    FAILED: An action raised; recovery is the caller's responsibility
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Callable, Any
import logging

logger = logging.getLogger(__name__)


class FlowPhase(Enum):
    """Presentation flow phases."""
    IDLE = auto()
    PRESENTING_STEPS = auto()
    SEQUENCE_COMPLETE = auto()
    AWAITING_TRIGGER = auto()
    WIN_PRESENTATION = auto()
    COUNT_UP = auto()
    COMPLETED = auto()
    CANCELLED = auto()
    FAILED = auto()


@dataclass
class FlowContext:
    """Context data carried across phases of one flow."""
    result_flow_id: str | None = None
    spin_id: str | None = None
    tier: str | None = None
    error_message: str | None = None


# Phases a new flow may be started from
_STARTABLE = (
    FlowPhase.IDLE,
    FlowPhase.COMPLETED,
    FlowPhase.CANCELLED,
    FlowPhase.FAILED,
    FlowPhase.PRESENTING_STEPS,
    FlowPhase.SEQUENCE_COMPLETE,
    FlowPhase.AWAITING_TRIGGER,
    FlowPhase.WIN_PRESENTATION,
    FlowPhase.COUNT_UP,
)

_RUNNING = (
    FlowPhase.PRESENTING_STEPS,
    FlowPhase.SEQUENCE_COMPLETE,
    FlowPhase.AWAITING_TRIGGER,
    FlowPhase.WIN_PRESENTATION,
    FlowPhase.COUNT_UP,
)


class FlowStateMachine:
    """
    Tracks the phase of the active presentation flow.

    A new spin may supersede the flow in any phase, and any running
    phase may be cancelled or fail. Listeners are notified on every
    accepted transition.
    """

    VALID_TRANSITIONS: list[tuple[FlowPhase, FlowPhase]] = [
        # Flow start (supersedes whatever was running)
        *[(phase, FlowPhase.PRESENTING_STEPS) for phase in _STARTABLE],

        # Happy path
        (FlowPhase.PRESENTING_STEPS, FlowPhase.SEQUENCE_COMPLETE),
        (FlowPhase.SEQUENCE_COMPLETE, FlowPhase.AWAITING_TRIGGER),
        (FlowPhase.AWAITING_TRIGGER, FlowPhase.WIN_PRESENTATION),
        (FlowPhase.WIN_PRESENTATION, FlowPhase.COUNT_UP),
        (FlowPhase.COUNT_UP, FlowPhase.COMPLETED),

        # Abort paths
        *[(phase, FlowPhase.CANCELLED) for phase in _RUNNING],
        *[(phase, FlowPhase.FAILED) for phase in _RUNNING],

        # Recovery
        (FlowPhase.COMPLETED, FlowPhase.IDLE),
        (FlowPhase.CANCELLED, FlowPhase.IDLE),
        (FlowPhase.FAILED, FlowPhase.IDLE),
    ]

    def __init__(self, initial_phase: FlowPhase = FlowPhase.IDLE) -> None:
        self._phase = initial_phase
        self._context = FlowContext()
        self._listeners: list[Callable[[FlowPhase, FlowPhase, FlowContext], None]] = []
        self._valid_transitions = set(self.VALID_TRANSITIONS)

    @property
    def phase(self) -> FlowPhase:
        """Get current phase."""
        return self._phase

    @property
    def context(self) -> FlowContext:
        """Get current context."""
        return self._context

    @property
    def is_running(self) -> bool:
        return self._phase in _RUNNING

    def can_transition(self, to_phase: FlowPhase) -> bool:
        """Check if transition to given phase is valid."""
        return (self._phase, to_phase) in self._valid_transitions

    def transition(self, to_phase: FlowPhase, **context_updates: Any) -> bool:
        """
        Attempt to transition to a new phase.

        Args:
            to_phase: Target phase
            **context_updates: Updates to apply to context

        Returns:
            True if transition successful, False otherwise
        """
        if not self.can_transition(to_phase):
            logger.warning(
                f"Invalid flow transition: {self._phase.name} -> {to_phase.name}"
            )
            return False

        old_phase = self._phase
        self._phase = to_phase

        if to_phase == FlowPhase.PRESENTING_STEPS:
            self._context = FlowContext()

        for key, value in context_updates.items():
            if hasattr(self._context, key):
                setattr(self._context, key, value)

        logger.debug(f"Flow transition: {old_phase.name} -> {to_phase.name}")

        for listener in self._listeners:
            try:
                listener(old_phase, to_phase, self._context)
            except Exception as e:
                logger.error(f"Error in flow listener: {e}")

        return True

    def add_listener(
        self,
        callback: Callable[[FlowPhase, FlowPhase, FlowContext], None]
    ) -> None:
        """Add a phase change listener."""
        self._listeners.append(callback)

    def remove_listener(
        self,
        callback: Callable[[FlowPhase, FlowPhase, FlowContext], None]
    ) -> None:
        """Remove a phase change listener."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def reset(self) -> None:
        """Reset to IDLE without validation."""
        old_phase = self._phase
        self._phase = FlowPhase.IDLE
        self._context = FlowContext()

        for listener in self._listeners:
            try:
                listener(old_phase, FlowPhase.IDLE, self._context)
            except Exception as e:
                logger.error(f"Error in flow listener during reset: {e}")

        logger.debug("Flow state reset to IDLE")

    def enter_failed(self, message: str) -> bool:
        """Convenience method to enter the failed phase."""
        return self.transition(FlowPhase.FAILED, error_message=message)

    def recover(self) -> bool:
        """Return a finished flow to IDLE."""
        if self._phase in (FlowPhase.FAILED, FlowPhase.CANCELLED, FlowPhase.COMPLETED):
            self._context.error_message = None
            return self.transition(FlowPhase.IDLE)
        return False
