"""
Step sequence presenter.

Plays the server's spin steps in order against the grid view:

    RESULT  -> commit the landed grid, highlight wins, hold
    CASCADE -> removal -> drop -> refill -> commit grid -> highlight, hold

While a run is in progress the presenter owns an *arena*: a
``rows x cols`` array of instance handles (``EMPTY`` for a gap) seeded
from the view at entry. Arena entries change only at phase boundaries,
after the phase's animations have settled. The commit phase resyncs the
arena and the view to the server's post-cascade matrix, correcting any
animation drift, and hands the arena back to the view.
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence, Set, Tuple, Union
import asyncio
import logging

import numpy as np

from slotflow.animation.easing import Easing
from slotflow.config.settings import StepTimings
from slotflow.core.events import Event, EventBus, EventType
from slotflow.grid.matrix import parse_matrix
from slotflow.grid.view import EMPTY, GridView
from slotflow.presentation.cascade import (
    deduplicate_movements,
    deduplicate_positions,
    derive_gravity_drops,
)
from slotflow.presentation.protocol import CascadeStep, Position, ResultStep
from slotflow.presentation.wins import WinData, map_step_wins
from slotflow.timeline.cancellation import CancellationToken, cancellable_sleep

logger = logging.getLogger(__name__)

Step = Union[ResultStep, CascadeStep]
StepCallback = Callable[[Step], None]

REMOVAL_SCALE = 0.3
REFILL_EASE = "back.out(1.2)"


@dataclass
class _Run:
    """State of one ``execute()`` call."""

    token: CancellationToken
    arena: np.ndarray
    result_flow_id: str = ""
    spin_id: str = ""
    # Handles this run has tweened; killed when the run is cancelled
    animated: Set[int] = field(default_factory=set)


def _consume_exception(future: asyncio.Future) -> None:
    # Abandoned on cancel; retrieve the error so it is not reported as unhandled
    if not future.cancelled() and future.exception() is not None:
        logger.debug(f"Animation failed after run ended: {future.exception()}")


class StepSequencePresenter:
    """Presents RESULT and CASCADE steps with strict phase ordering.

    Only one run is active at a time. ``cancel()`` aborts the current run
    at the next phase boundary or wait and kills the tweens the run
    started; it does not roll back what has already been applied.
    """

    def __init__(
        self,
        view: GridView,
        bus: EventBus,
        timings: Optional[StepTimings] = None,
    ) -> None:
        self._view = view
        self._bus = bus
        self._timings = timings or StepTimings()
        self._run: Optional[_Run] = None

    @property
    def view(self) -> GridView:
        return self._view

    @property
    def timings(self) -> StepTimings:
        return self._timings

    @timings.setter
    def timings(self, timings: StepTimings) -> None:
        self._timings = timings

    def is_active(self) -> bool:
        return self._run is not None

    def cancel(self) -> None:
        """Cancel the current run, if any."""
        if self._run is not None:
            self._run.token.cancel()

    def destroy(self) -> None:
        self.cancel()
        self._run = None

    # -- Entry point -------------------------------------------------------

    async def execute(
        self,
        steps: Sequence[Step],
        total_win: float,
        bet: float,
        *,
        token: Optional[CancellationToken] = None,
        result_flow_id: str = "",
        spin_id: str = "",
        on_step_complete: Optional[StepCallback] = None,
    ) -> float:
        """Present ``steps`` in index order.

        Args:
            steps: Validated spin steps
            total_win: Spin total, for logging
            bet: Total bet, for logging
            token: Outer token; cancelling it cancels this run
            result_flow_id: Flow id stamped on emitted facts
            spin_id: Spin id stamped on emitted facts
            on_step_complete: Called after each step that finished uncancelled

        Returns:
            Cumulative win reported by the last presented step
        """
        if not steps:
            return 0.0

        if self._run is not None:
            logger.warning("Step sequence started while another run is active; cancelling it")
            self._run.token.cancel()

        run = _Run(
            token=CancellationToken(),
            arena=self._view.slot_handles(),
            result_flow_id=result_flow_id,
            spin_id=spin_id,
        )
        self._run = run
        run.token.on_cancel(lambda: self._kill_run_tweens(run))
        unlink = token.on_cancel(run.token.cancel) if token is not None else None

        logger.info(
            f"Starting step sequence: {len(steps)} steps, "
            f"totalWin: {total_win:g}, bet: {bet:g}"
        )

        cumulative = 0.0
        try:
            for i, step in enumerate(steps):
                if run.token.is_cancelled:
                    break

                if isinstance(step, ResultStep):
                    cumulative = await self._present_result_step(run, step)
                else:
                    cumulative = await self._present_cascade_step(run, step)

                if run.token.is_cancelled:
                    break
                logger.debug(f"Step {i} complete")
                if on_step_complete is not None:
                    on_step_complete(step)

            # Clear per-step highlights
            self._emit(run, EventType.WIN_INTERRUPTED)
        finally:
            if unlink is not None:
                unlink()
            if self._run is run:
                self._run = None

        if run.token.is_cancelled:
            logger.info("Step sequence cancelled")
        else:
            logger.info("Step sequence complete")
        return cumulative

    # -- RESULT step -------------------------------------------------------

    async def _present_result_step(self, run: _Run, step: ResultStep) -> float:
        step_win = step.total_win.amount
        matrix = step.grid.matrix_string

        # The landed grid is already on screen; this only records it
        self._emit_grid_committed(run, step.index, "RESULT", matrix)

        wins = map_step_wins(step.wins)
        if not wins:
            return step_win

        logger.info(f"RESULT step: {len(wins)} wins, total: {step_win:g}")
        self._emit(
            run,
            EventType.WIN_DETECTED,
            step_index=step.index,
            wins=wins,
            total_win=step_win,
        )

        hold = max(
            self._timings.result_win_display_ms,
            len(wins) * self._timings.payline_step_ms,
        )
        await cancellable_sleep(hold, run.token)
        return step_win

    # -- CASCADE step ------------------------------------------------------

    async def _present_cascade_step(self, run: _Run, step: CascadeStep) -> float:
        unique_removed = deduplicate_positions(step.removed_positions)

        logger.info(
            f"CASCADE step {step.index}: "
            f"remove={len(unique_removed)} (raw: {len(step.removed_positions)}), "
            f"movements={len(step.movements or [])}, refill={len(step.refills)}"
        )

        await self._phase_removal(run, unique_removed)
        if run.token.is_cancelled:
            return step.cumulative_win.amount

        await self._phase_drop(run, step, unique_removed)
        if run.token.is_cancelled:
            return step.cumulative_win.amount

        await self._phase_refill(run, step)
        if run.token.is_cancelled:
            return step.cumulative_win.amount

        # Previous highlights go away right before the new grid is committed
        self._emit(run, EventType.WIN_INTERRUPTED)

        matrix = step.grid_after.matrix_string
        self._commit_grid(run, matrix)
        self._emit_grid_committed(run, step.index, "CASCADE", matrix)

        wins = map_step_wins(step.wins)
        if wins:
            if logger.isEnabledFor(logging.DEBUG):
                self._validate_win_positions(run, step.index, wins)
            self._emit(
                run,
                EventType.WIN_DETECTED,
                step_index=step.index,
                wins=wins,
                total_win=step.cumulative_win.amount,
                multiplier=step.multiplier,
            )
            await cancellable_sleep(self._timings.cascade_win_display_ms, run.token)

        return step.cumulative_win.amount

    # -- Phase: removal ----------------------------------------------------

    async def _phase_removal(self, run: _Run, positions: List[Position]) -> None:
        """Fade and shrink removed symbols, then clear their cells."""
        view = self._view
        arena = run.arena
        settles: List[Awaitable[None]] = []
        removed: List[Tuple[int, int, int]] = []

        for p in positions:
            if not view.in_bounds(p.row, p.col):
                logger.warning(f"Removal position out of bounds: ({p.row},{p.col})")
                continue

            handle = int(arena[p.row, p.col])
            if handle == EMPTY or view.instance(handle) is None:
                logger.warning(f"No symbol to remove at ({p.row},{p.col})")
                continue

            view.kill_tweens(handle)
            settles.append(self._animate(
                run,
                handle,
                self._timings.removal_ms,
                Easing.POWER2_IN,
                alpha=0.0,
                scale=REMOVAL_SCALE,
            ))
            removed.append((p.row, p.col, handle))

        await self._settle(run, settles)
        if run.token.is_cancelled:
            # The instances may already belong to the next run
            return

        for row, col, handle in removed:
            inst = view.instance(handle)
            if inst is not None:
                inst.visible = False
                inst.alpha = 0.0
            arena[row, col] = EMPTY

        logger.debug(f"Removal phase complete: {len(removed)} symbols")

    # -- Phase: drop -------------------------------------------------------

    async def _phase_drop(
        self,
        run: _Run,
        step: CascadeStep,
        unique_removed: List[Position],
    ) -> None:
        """Move survivors down, from server movements or derived gravity."""
        view = self._view
        arena = run.arena
        settles: List[Awaitable[None]] = []
        moves: List[Tuple[int, int, int, int, int]] = []

        if step.movements:
            logger.debug(f"Drop phase: {len(step.movements)} server movements")

            for mv in deduplicate_movements(step.movements):
                src, dst = mv.from_, mv.to
                if not (view.in_bounds(src.row, src.col) and view.in_bounds(dst.row, dst.col)):
                    logger.warning(
                        f"Movement out of bounds: ({src.row},{src.col}) -> ({dst.row},{dst.col})"
                    )
                    continue

                handle = int(arena[src.row, src.col])
                inst = view.instance(handle) if handle != EMPTY else None
                if inst is None or not inst.visible:
                    continue

                props = {"y": view.row_to_y(dst.row)}
                if dst.col != src.col:
                    props["x"] = view.col_to_x(dst.col)
                settles.append(self._animate(run, handle, self._timings.drop_ms, Easing.BOUNCE_OUT, **props))
                moves.append((src.row, src.col, dst.row, dst.col, handle))
        else:
            logger.debug("Drop phase: deriving movements from removed positions")

            plan = derive_gravity_drops(
                [p.key for p in unique_removed],
                view.rows,
                view.cols,
                occupied=lambda row, col: arena[row, col] != EMPTY,
            )
            for drop in plan.overflow:
                logger.warning(
                    f"Drop target out of bounds: col={drop.col}, "
                    f"targetRow={drop.to_row} >= rows={view.rows}"
                )

            for drop in plan.drops:
                handle = int(arena[drop.from_row, drop.col])
                settles.append(self._animate(
                    run,
                    handle,
                    self._timings.drop_ms,
                    Easing.BOUNCE_OUT,
                    y=view.row_to_y(drop.to_row),
                ))
                moves.append((drop.from_row, drop.col, drop.to_row, drop.col, handle))

        # Clear every source before writing any destination
        for from_row, from_col, _, _, _ in moves:
            arena[from_row, from_col] = EMPTY
        for _, _, to_row, to_col, handle in moves:
            arena[to_row, to_col] = handle

        await self._settle(run, settles)
        logger.debug(f"Drop phase complete: {len(moves)} moves")

    # -- Phase: refill -----------------------------------------------------

    async def _phase_refill(self, run: _Run, step: CascadeStep) -> None:
        """Drop new symbols in from above the grid, reusing hidden instances."""
        if not step.refills:
            return

        view = self._view
        arena = run.arena
        claimed: Set[int] = set()
        settles: List[Awaitable[None]] = []

        logger.debug(f"Refill phase: {len(step.refills)} symbols")

        for i, refill in enumerate(step.refills):
            row, col = refill.position.row, refill.position.col
            if not view.in_bounds(row, col):
                logger.warning(f"Refill position out of bounds: ({row},{col})")
                continue

            handle = self._find_refill_instance(arena, col, claimed)
            if handle == EMPTY:
                fallback = view.slot_handle(row, col)
                if fallback != EMPTY and fallback not in claimed:
                    logger.warning(f"Refill fallback: reclaiming slot instance for ({row},{col})")
                    arena[arena == fallback] = EMPTY
                    handle = fallback

            if handle == EMPTY:
                logger.warning(f"No reusable symbol for refill at ({row},{col})")
                continue

            claimed.add(handle)
            arena[row, col] = handle

            inst = view.instance(handle)
            target_y = view.row_to_y(row)
            view.kill_tweens(handle)
            inst.symbol_id = refill.symbol
            inst.visible = True
            inst.alpha = 0.0
            inst.scale = view.symbol_scale
            inst.x = view.col_to_x(col)
            inst.y = min(target_y - view.row_pitch * 2, view.row_to_y(-1))

            settles.append(self._animate(
                run,
                handle,
                self._timings.refill_ms,
                REFILL_EASE,
                delay_ms=i * self._timings.refill_stagger_ms,
                y=target_y,
                alpha=1.0,
            ))

        await self._settle(run, settles)
        logger.debug("Refill phase complete")

    def _find_refill_instance(self, arena: np.ndarray, col: int, claimed: Set[int]) -> int:
        """First hidden instance of ``col`` that is neither claimed nor in the arena."""
        owned = set(int(h) for h in arena.flat)
        for handle in self._view.column_pool(col):
            inst = self._view.instance(handle)
            if inst is None or inst.visible or inst.alpha > 0:
                continue
            if handle in claimed or handle in owned:
                continue
            return handle
        return EMPTY

    # -- Commit ------------------------------------------------------------

    def _commit_grid(self, run: _Run, matrix: str) -> None:
        """Force the arena and the view to the server's matrix."""
        rows = parse_matrix(matrix)
        if not rows:
            logger.warning("Grid commit skipped: empty matrix")
            return

        view = self._view
        arena = run.arena
        used: Set[int] = set()

        for row, symbols in enumerate(rows[:view.rows]):
            for col, symbol_id in enumerate(symbols[:view.cols]):
                handle = int(arena[row, col])
                if handle == EMPTY or handle in used:
                    handle = self._free_instance(arena, row, col, used)
                if handle == EMPTY:
                    logger.warning(f"Grid commit: no instance available for ({row},{col})")
                    continue

                used.add(handle)
                arena[row, col] = handle

                inst = view.instance(handle)
                view.kill_tweens(handle)
                inst.symbol_id = symbol_id
                inst.visible = True
                inst.alpha = 1.0
                inst.scale = view.symbol_scale
                inst.x = view.col_to_x(col)
                inst.y = view.row_to_y(row)

        view.commit_layout(arena)
        logger.debug(f"Symbol arena synced to matrix: {matrix[:30]}")

    def _free_instance(self, arena: np.ndarray, row: int, col: int, used: Set[int]) -> int:
        """An instance for (row, col) that owns no other cell."""
        candidates = [self._view.slot_handle(row, col)] + self._view.column_pool(col)
        for handle in candidates:
            if handle == EMPTY or handle in used:
                continue
            if (arena == handle).any():
                continue
            return handle
        return EMPTY

    # -- Helpers -----------------------------------------------------------

    def _animate(
        self,
        run: _Run,
        handle: int,
        duration_ms: float,
        ease: Easing | str,
        **props,
    ) -> Awaitable[None]:
        run.animated.add(handle)
        return self._view.animate(handle, duration_ms, ease, **props)

    def _kill_run_tweens(self, run: _Run) -> None:
        for handle in run.animated:
            self._view.kill_tweens(handle)
        logger.debug(f"Killed tweens of cancelled run: {len(run.animated)} instances")

    async def _settle(self, run: _Run, settles: List[Awaitable[None]]) -> None:
        """Wait for every animation, or until the run is cancelled."""
        if not settles:
            return
        gathered = asyncio.gather(*settles)
        gathered.add_done_callback(_consume_exception)
        if run.token.is_cancelled:
            return

        loop = asyncio.get_running_loop()
        woken = loop.create_future()

        def wake() -> None:
            if not woken.done():
                woken.set_result(None)

        remove = run.token.on_cancel(wake)
        try:
            await asyncio.wait({gathered, woken}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            remove()
            wake()

        if gathered.done() and not gathered.cancelled() and gathered.exception() is not None:
            raise gathered.exception()

    def _validate_win_positions(self, run: _Run, step_index: int, wins: List[WinData]) -> None:
        for win in wins:
            for row, col in win.positions:
                handle = int(run.arena[row, col]) if self._view.in_bounds(row, col) else EMPTY
                inst = self._view.instance(handle) if handle != EMPTY else None
                live = f"{inst.symbol_id} @ ({inst.x:.0f},{inst.y:.0f})" if inst else "n/a"
                logger.debug(
                    f"Step {step_index} validate: win line {win.line_id} "
                    f"pos ({row},{col}) -> liveSymbol={live}"
                )

    def _emit(self, run: _Run, event_type: EventType, **data) -> None:
        payload = {"result_flow_id": run.result_flow_id, "spin_id": run.spin_id}
        payload.update(data)
        self._bus.emit(Event(event_type, data=payload, source="step_presenter"))

    def _emit_grid_committed(self, run: _Run, step_index: int, step_type: str, matrix: str) -> None:
        self._emit(
            run,
            EventType.STEP_GRID_COMMITTED,
            step_index=step_index,
            step_type=step_type,
            matrix_string=matrix,
        )
        logger.debug(f"Grid committed ({step_type} step {step_index}): {matrix[:30]}")
