"""
Shared pytest fixtures.

Timings default to zero so presenter and controller runs finish in a
handful of event-loop turns; tests that need real waits build their own.
"""

from typing import List

import pytest

from slotflow.config.settings import PresentationSettings, StepTimings
from slotflow.core.events import Event, EventBus, EventType
from slotflow.grid.view import SymbolGrid
from slotflow.presentation.controller import ResultPresentationController
from slotflow.presentation.steps import StepSequencePresenter

LANDED = "KKKQP;AQPAP;JAPJA;PPKPQ"


class FactRecorder:
    """Collects every fact emitted on a bus."""

    def __init__(self, bus: EventBus) -> None:
        self.events: List[Event] = []
        bus.subscribe_all(self.events.append)

    def types(self) -> List[str]:
        return [e.type.value if isinstance(e.type, EventType) else e.type for e in self.events]

    def of(self, event_type: EventType) -> List[Event]:
        return [e for e in self.events if e.type == event_type]

    def count(self, event_type: EventType) -> int:
        return len(self.of(event_type))


@pytest.fixture
def bus():
    return EventBus(history_limit=500)


@pytest.fixture
def facts(bus):
    return FactRecorder(bus)


@pytest.fixture
def fast_timings():
    return StepTimings(
        result_win_display_ms=0,
        payline_step_ms=0,
        removal_ms=0,
        drop_ms=0,
        refill_ms=0,
        refill_stagger_ms=0,
        cascade_win_display_ms=0,
    )


@pytest.fixture
def fast_presentation():
    return PresentationSettings(
        count_up_ms=0,
        post_win_delay_ms=0,
        hold_normal_ms=0,
        hold_big_ms=0,
        hold_mega_ms=0,
        hold_epic_ms=0,
    )


@pytest.fixture
def grid():
    return SymbolGrid(rows=4, cols=5, matrix=LANDED)


@pytest.fixture
def presenter(grid, bus, fast_timings):
    return StepSequencePresenter(grid, bus, fast_timings)


@pytest.fixture
def controller(bus, presenter, fast_presentation):
    ctrl = ResultPresentationController(bus, presenter, fast_presentation)
    yield ctrl
    ctrl.destroy()
