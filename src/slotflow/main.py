"""
Main entry point for slotflow.

Runs either the pygame simulator or a headless replay of the demo spins,
depending on ``SLOTFLOW_ENV``.
"""

import asyncio
import logging
import sys
from dataclasses import dataclass

from slotflow.animation.tween import Tweener
from slotflow.config.settings import Settings, get_settings
from slotflow.core.events import Event, EventBus, EventType
from slotflow.grid.view import SymbolGrid
from slotflow.presentation.controller import ResultPresentationController
from slotflow.presentation.steps import StepSequencePresenter
from slotflow.simulator.demo import INITIAL_MATRIX, demo_spins

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )


@dataclass
class App:
    """Shared components wired together from settings."""

    event_bus: EventBus
    grid: SymbolGrid
    presenter: StepSequencePresenter
    controller: ResultPresentationController


def build_app(settings: Settings) -> App:
    event_bus = EventBus()
    grid_settings = settings.grid
    grid = SymbolGrid(
        rows=grid_settings.rows,
        cols=grid_settings.cols,
        cell_width=grid_settings.cell_width,
        cell_height=grid_settings.cell_height,
        spacing=grid_settings.spacing,
        symbol_scale=grid_settings.symbol_scale,
        spares_per_column=grid_settings.spares_per_column,
        tweener=Tweener(frame_ms=grid_settings.frame_ms),
        matrix=INITIAL_MATRIX,
    )
    presenter = StepSequencePresenter(grid, event_bus, settings.effective_timings)
    controller = ResultPresentationController(event_bus, presenter, settings.presentation)
    return App(event_bus=event_bus, grid=grid, presenter=presenter, controller=controller)


async def run_headless(settings: Settings) -> None:
    """Replay every demo spin and log each emitted fact."""
    app = build_app(settings)

    def log_fact(event: Event) -> None:
        logger.info(f"fact {event.type.value} from {event.source}: {event.data}")

    unsubscribe = app.event_bus.subscribe_all(log_fact)
    try:
        for payload in demo_spins():
            app.event_bus.clear_history()
            app.grid.load_matrix(payload["round"]["matrixString"])
            await app.controller.handle_spin_payload(payload)

            tier = app.event_bus.get_history(EventType.WIN_TIER_RESOLVED, limit=1)
            steps = app.event_bus.get_history(EventType.STEP_PRESENTED, limit=len(payload["steps"]))
            logger.info(
                f"Spin {payload['round']['roundId']}: {len(steps)} steps, "
                f"tier: {tier[0].data['tier'] if tier else 'n/a'}"
            )
            logger.info(f"Grid after spin: {app.grid.to_matrix()}")
    finally:
        unsubscribe()
        app.controller.destroy()


async def run_simulator(settings: Settings) -> None:
    """Run the pygame simulator."""
    from slotflow.simulator.window import SimulatorWindow

    app = build_app(settings)
    window = SimulatorWindow.from_settings(settings, app.grid, app.controller, app.event_bus)
    try:
        await window.run()
    finally:
        app.controller.destroy()


def main() -> None:
    """Main entry point."""
    from dotenv import load_dotenv

    # Load environment variables
    load_dotenv()

    settings = get_settings()
    setup_logging(settings.debug)
    logger.info("slotflow starting...")

    try:
        if settings.is_simulator:
            logger.info("Running in simulator mode")
            asyncio.run(run_simulator(settings))
        else:
            logger.info("Running headless")
            asyncio.run(run_headless(settings))

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)

    logger.info("slotflow stopped")


if __name__ == "__main__":
    main()
