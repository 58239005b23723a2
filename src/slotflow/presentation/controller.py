"""
Result presentation controller.

Owns the whole presentation of one spin result. Every call to
``handle_spin_result`` starts a new *flow* with a fresh id, cancels the
previous flow, and runs a single timeline with six phases:

    1. present steps          (StepSequencePresenter)
    2. sequence-completed     (unlocks SEQUENCE_END)
    3. wait for the trigger   (RESULT / SEQUENCE_END / FEATURE_END /
                               RESULT_DATA_FINALIZED)
    4. win presentation       (tier, single-fire guard, hold)
    5. count-up wait
    6. presentation-completed (+ data-finalized)

Facts on the bus are for observers only. The controller listens to
nothing but feature start/end, filtered to the active flow.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
import asyncio
import logging
import time

from slotflow.config.settings import PresentationSettings, TriggerPolicy
from slotflow.core.events import Event, EventBus, EventType
from slotflow.core.state import FlowPhase, FlowStateMachine
from slotflow.presentation.protocol import CascadeStep, ResultStep, parse_spin_result
from slotflow.presentation.steps import StepSequencePresenter
from slotflow.presentation.wins import WinTier, hold_ms_for, resolve_win_tier, win_multiplier
from slotflow.timeline.builder import SequenceBuilder
from slotflow.timeline.cancellation import CancellationToken, OperationCancelled, cancellable_sleep
from slotflow.timeline.runner import TimelineRunner

logger = logging.getLogger(__name__)

Step = Union[ResultStep, CascadeStep]

# Policies that hold the win presentation while a feature is running
_FEATURE_GATED = (TriggerPolicy.FEATURE_END, TriggerPolicy.RESULT_DATA_FINALIZED)


@dataclass
class _Flow:
    """Guards and resources of one presentation flow."""

    result_flow_id: str
    spin_id: str
    policy: TriggerPolicy
    token: CancellationToken = field(default_factory=CancellationToken)
    gate: asyncio.Event = field(default_factory=asyncio.Event)
    runner: Optional[TimelineRunner] = None
    win_presentation_played: bool = False
    feature_active: bool = False
    sequence_done: bool = False

    def unlock(self) -> None:
        self.gate.set()


class ResultPresentationController:
    """Runs one deterministic presentation timeline per spin result."""

    def __init__(
        self,
        bus: EventBus,
        presenter: StepSequencePresenter,
        config: Optional[PresentationSettings] = None,
    ) -> None:
        self._bus = bus
        self._presenter = presenter
        self._config = config or PresentationSettings()
        self._state = FlowStateMachine()
        self._flow: Optional[_Flow] = None
        self._flow_counter = 0
        self._unsubscribers: List[Callable[[], None]] = []

        self._setup_listeners()
        logger.info(f"Initialized, trigger: {self._config.win_presentation_trigger.value}")

    # -- Listeners ---------------------------------------------------------

    def _setup_listeners(self) -> None:
        self._unsubscribers.append(
            self._bus.subscribe(EventType.FEATURE_STARTED, self._on_feature_started)
        )
        self._unsubscribers.append(
            self._bus.subscribe(EventType.FEATURE_ENDED, self._on_feature_ended)
        )

    def _on_feature_started(self, event: Event) -> None:
        flow = self._flow
        if flow is None or not self._is_active_flow(flow, event.data):
            return
        flow.feature_active = True
        logger.debug(f"Feature started (flow: {flow.result_flow_id})")

    def _on_feature_ended(self, event: Event) -> None:
        flow = self._flow
        if flow is None or not self._is_active_flow(flow, event.data):
            return
        flow.feature_active = False
        logger.debug(f"Feature completed (flow: {flow.result_flow_id})")

        if flow.policy in _FEATURE_GATED and flow.sequence_done:
            flow.unlock()

    @staticmethod
    def _is_active_flow(flow: _Flow, payload: Dict[str, Any]) -> bool:
        """Facts without ids are accepted; ids that are present must match."""
        if "result_flow_id" in payload and payload["result_flow_id"] != flow.result_flow_id:
            return False
        if "spin_id" in payload and payload["spin_id"] != flow.spin_id:
            return False
        if "round_id" in payload and payload["round_id"] != flow.spin_id:
            return False
        return True

    # -- Public API --------------------------------------------------------

    async def handle_spin_result(
        self,
        spin_id: str,
        steps: Sequence[Step],
        total_win: float,
        total_bet: float,
        final_matrix_string: str = "",
    ) -> None:
        """Present a spin result; returns when the flow completes or is cancelled.

        Raises:
            Exception: Whatever a phase raised; the flow is left FAILED
        """
        self._flow_counter += 1
        flow = _Flow(
            result_flow_id=f"rpf_{self._flow_counter}_{int(time.time() * 1000)}",
            spin_id=spin_id,
            policy=self._config.win_presentation_trigger,
        )
        flow.token.on_cancel(flow.unlock)

        previous, self._flow = self._flow, flow
        if previous is not None:
            self._abort(previous)
            logger.info(f"Superseded flow: {previous.result_flow_id}")

        self._state.transition(
            FlowPhase.PRESENTING_STEPS,
            result_flow_id=flow.result_flow_id,
            spin_id=spin_id,
        )
        logger.info(
            f"New flow: {flow.result_flow_id} | spin: {spin_id} | "
            f"trigger: {flow.policy.value} | steps: {len(steps)}"
        )

        builder = (
            SequenceBuilder.create()
            .call(lambda: self._present_steps(flow, steps, total_win, total_bet))
            .call(lambda: self._complete_sequence(flow, len(steps), total_win))
            .call(lambda: self._await_trigger(flow))
            .call(lambda: self._run_win_presentation(
                flow, flow.result_flow_id, flow.spin_id, total_win, total_bet
            ))
            .call(lambda: self._count_up(flow, total_win))
            .call(lambda: self._complete_presentation(flow, total_win, final_matrix_string))
        )

        runner = TimelineRunner(builder.build())
        flow.runner = runner
        try:
            await runner.start()
        except OperationCancelled:
            logger.debug(f"Flow {flow.result_flow_id} cancelled")
        except Exception as e:
            logger.error(f"Timeline error in flow {flow.result_flow_id}: {e}")
            if flow is self._flow:
                self._state.enter_failed(str(e))
            raise
        finally:
            flow.runner = None

    async def handle_spin_payload(self, raw: Any) -> None:
        """Validate a raw spin response and present it.

        Raises:
            PayloadError: If the payload is malformed
        """
        result = parse_spin_result(raw)
        await self.handle_spin_result(
            result.spin_id,
            result.steps,
            result.win.amount,
            result.stake.amount,
            result.final_matrix_string,
        )

    def cancel(self) -> None:
        """Abort the active flow without emitting completion facts."""
        self._presenter.cancel()
        flow = self._flow
        if flow is None:
            return
        self._abort(flow)
        if self._state.is_running:
            self._state.transition(FlowPhase.CANCELLED)
        logger.info(f"Cancelled flow: {flow.result_flow_id}")

    def destroy(self) -> None:
        self.cancel()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self._presenter.destroy()
        self._flow = None

    def is_active(self) -> bool:
        flow = self._flow
        return flow is not None and flow.runner is not None and flow.runner.is_running

    @property
    def phase(self) -> FlowPhase:
        return self._state.phase

    @property
    def state(self) -> FlowStateMachine:
        return self._state

    @property
    def active_flow_id(self) -> Optional[str]:
        return self._flow.result_flow_id if self._flow else None

    @property
    def active_spin_id(self) -> Optional[str]:
        return self._flow.spin_id if self._flow else None

    def set_config(self, **changes: Any) -> None:
        """Update settings; applies to flows started afterwards."""
        merged = {**self._config.model_dump(), **changes}
        self._config = PresentationSettings(**merged)
        logger.info(f"Config updated, trigger: {self._config.win_presentation_trigger.value}")

    def get_config(self) -> PresentationSettings:
        return self._config.model_copy()

    # -- Phases ------------------------------------------------------------

    async def _present_steps(
        self,
        flow: _Flow,
        steps: Sequence[Step],
        total_win: float,
        total_bet: float,
    ) -> None:
        def on_step_complete(step: Step) -> None:
            if flow.policy == TriggerPolicy.RESULT and isinstance(step, ResultStep):
                flow.unlock()

        await self._presenter.execute(
            steps,
            total_win,
            total_bet,
            token=flow.token,
            result_flow_id=flow.result_flow_id,
            spin_id=flow.spin_id,
            on_step_complete=on_step_complete,
        )
        if flow.token.is_cancelled:
            return

        for i, step in enumerate(steps):
            if isinstance(step, CascadeStep):
                cumulative = step.cumulative_win.amount
            else:
                cumulative = step.total_win.amount
            self._emit(
                EventType.STEP_PRESENTED,
                result_flow_id=flow.result_flow_id,
                spin_id=flow.spin_id,
                step_index=i,
                step_type=step.type,
                cumulative_win=cumulative,
            )

    def _complete_sequence(self, flow: _Flow, total_steps: int, total_win: float) -> None:
        if flow.token.is_cancelled:
            return
        flow.sequence_done = True
        self._enter(flow, FlowPhase.SEQUENCE_COMPLETE)
        self._emit(
            EventType.SEQUENCE_COMPLETED,
            result_flow_id=flow.result_flow_id,
            spin_id=flow.spin_id,
            total_steps=total_steps,
            cumulative_win=total_win,
        )
        logger.debug(f"Sequence completed (flow: {flow.result_flow_id})")

        # RESULT also opens here when the steps held no RESULT step
        if flow.policy in (TriggerPolicy.SEQUENCE_END, TriggerPolicy.RESULT):
            flow.unlock()

    async def _await_trigger(self, flow: _Flow) -> None:
        if flow.token.is_cancelled:
            return
        self._enter(flow, FlowPhase.AWAITING_TRIGGER)

        if flow.policy in _FEATURE_GATED and not flow.feature_active:
            flow.unlock()

        if not flow.gate.is_set():
            logger.debug(f"Waiting for trigger: {flow.policy.value}")
            await flow.gate.wait()

    async def _run_win_presentation(
        self,
        flow: _Flow,
        flow_id: str,
        spin_id: str,
        total_win: float,
        total_bet: float,
    ) -> None:
        if flow.token.is_cancelled:
            return

        tier = resolve_win_tier(total_win, total_bet)
        multiplier = win_multiplier(total_win, total_bet)
        self._enter(flow, FlowPhase.WIN_PRESENTATION, tier=tier.value)
        self._emit(
            EventType.WIN_TIER_RESOLVED,
            result_flow_id=flow_id,
            spin_id=spin_id,
            tier=tier.value,
            total_win=total_win,
            total_bet=total_bet,
            multiplier=multiplier,
        )
        logger.info(f"Win tier resolved: {tier.value} ({multiplier:.1f}x) flow: {flow_id}")

        if tier == WinTier.NONE:
            return

        active = self._flow
        if active is None or active.win_presentation_played:
            logger.info(f"Win presentation ignored, already played (flow: {flow_id})")
            return
        if flow_id != active.result_flow_id or spin_id != active.spin_id:
            logger.info(
                f"Win presentation ignored, stale flow "
                f"(expected: {active.result_flow_id}, got: {flow_id})"
            )
            return

        active.win_presentation_played = True

        self._emit(
            EventType.WIN_PRESENTATION_STARTED,
            result_flow_id=flow_id,
            spin_id=spin_id,
            tier=tier.value,
        )
        self._emit(
            EventType.GAME_WIN,
            amount=total_win,
            multiplier=multiplier,
            win_type=tier.value,
        )
        if tier.is_big:
            self._emit(EventType.BIG_WIN_SHOW, amount=total_win, type=tier.value)
        logger.info(f"Win presentation started: {tier.value} (spin: {spin_id})")

        await cancellable_sleep(hold_ms_for(tier, self._config.hold_ms()), flow.token)
        if flow.token.is_cancelled:
            return

        self._emit(
            EventType.WIN_PRESENTATION_COMPLETED,
            result_flow_id=flow_id,
            spin_id=spin_id,
            tier=tier.value,
            total_win=total_win,
        )
        logger.info(f"Win presentation completed: {tier.value} (spin: {spin_id})")

    async def _count_up(self, flow: _Flow, total_win: float) -> None:
        if flow.token.is_cancelled:
            return
        self._enter(flow, FlowPhase.COUNT_UP)
        if total_win <= 0:
            return

        count_up_ms = self._config.count_up_ms / self._config.speed
        self._emit(
            EventType.WIN_COUNTER_START,
            result_flow_id=flow.result_flow_id,
            spin_id=flow.spin_id,
            target_value=total_win,
            duration=count_up_ms,
        )
        await cancellable_sleep(
            count_up_ms + self._config.post_win_delay_ms / self._config.speed,
            flow.token,
        )

    def _complete_presentation(self, flow: _Flow, total_win: float, final_matrix_string: str) -> None:
        if flow.token.is_cancelled:
            return
        self._emit(
            EventType.PRESENTATION_COMPLETED,
            result_flow_id=flow.result_flow_id,
            spin_id=flow.spin_id,
            total_win=total_win,
            final_matrix_string=final_matrix_string,
        )
        if flow.policy == TriggerPolicy.RESULT_DATA_FINALIZED:
            self._emit(
                EventType.DATA_FINALIZED,
                result_flow_id=flow.result_flow_id,
                spin_id=flow.spin_id,
                final_total_win=total_win,
                feature_completed=not flow.feature_active,
            )
        self._enter(flow, FlowPhase.COMPLETED)
        logger.info(f"Presentation completed (flow: {flow.result_flow_id})")

    # -- Helpers -----------------------------------------------------------

    def _abort(self, flow: _Flow) -> None:
        if flow.runner is not None:
            flow.runner.stop()
        flow.token.cancel()
        flow.unlock()

    def _enter(self, flow: _Flow, phase: FlowPhase, **context: Any) -> None:
        if flow is not self._flow:
            return
        if self._state.phase == phase:
            for key, value in context.items():
                setattr(self._state.context, key, value)
            return
        self._state.transition(phase, **context)

    def _emit(self, event_type: EventType, **data: Any) -> None:
        self._bus.emit(Event(event_type, data=data, source="result_presentation"))
