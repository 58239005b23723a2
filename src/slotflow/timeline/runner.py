"""
Timeline runner.

Drives one ordered list of timeline actions with pause/resume, stop,
looping and progress derived from declared action durations.

States: idle -> running (optionally paused) -> completed | failed.
"""

from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Sequence
import asyncio
import logging

from slotflow.timeline.actions import TimelineAction
from slotflow.timeline.cancellation import CancellationToken

logger = logging.getLogger(__name__)


@dataclass
class TimelineConfig:
    """Runner options.

    Attributes:
        loop: Restart from the first action after each full pass
        auto_start: Schedule ``start()`` as soon as actions are set
        on_complete: Called once after the final pass, unless failed
        on_update: Called with progress (0-1) after each action
        on_error: Called once with the exception that failed the run
    """

    loop: bool = False
    auto_start: bool = False
    on_complete: Optional[Callable[[], None]] = None
    on_update: Optional[Callable[[float], None]] = None
    on_error: Optional[Callable[[BaseException], None]] = None


@dataclass
class TimelineState:
    """Snapshot of runner state. ``is_failed`` implies not running."""

    is_running: bool = False
    is_paused: bool = False
    is_failed: bool = False
    current_action_index: int = 0
    elapsed_time: float = 0.0
    total_duration: float = 0.0
    last_error: Optional[BaseException] = None


class TimelineRunner:
    """Runs timeline actions in order against a shared cancellation token.

    ``start()`` returns when the run completes, is stopped or fails. A
    failing action marks the run failed, reports through ``on_error`` and
    re-raises out of ``start()``.

    Stopping is cooperative: ``stop()`` cancels the token and the runner
    checks ``is_running`` before each action, so an action that ignores
    the token keeps the runner busy until it returns.
    """

    PAUSE_POLL_MS = 16

    def __init__(
        self,
        actions: Iterable[TimelineAction] = (),
        config: Optional[TimelineConfig] = None,
    ) -> None:
        self._config = config or TimelineConfig()
        self._state = TimelineState()
        self._actions: List[TimelineAction] = []
        self._token: Optional[CancellationToken] = None
        self._auto_task: Optional[asyncio.Task] = None
        self._skip_pending = False
        self.set_actions(actions)

    @property
    def config(self) -> TimelineConfig:
        return self._config

    @property
    def token(self) -> Optional[CancellationToken]:
        """Token of the current (or most recent) run."""
        return self._token

    def set_actions(self, actions: Iterable[TimelineAction]) -> None:
        self._actions = list(actions)
        self._state.total_duration = sum(action.duration for action in self._actions)

        if self._config.auto_start and self._actions:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.warning("auto_start requested outside a running event loop")
                return
            self._auto_task = loop.create_task(self.start())

    def get_actions(self) -> List[TimelineAction]:
        return list(self._actions)

    async def start(self) -> None:
        """Run the timeline from the first action. No-op while running."""
        if self._state.is_running:
            return

        self._state.is_running = True
        self._state.is_paused = False
        self._state.is_failed = False
        self._state.last_error = None
        self._state.current_action_index = 0
        self._state.elapsed_time = 0.0
        self._skip_pending = False
        self._token = CancellationToken()

        await self._run(self._token)

    async def _run(self, token: CancellationToken) -> None:
        state = self._state
        try:
            while True:
                while state.current_action_index < len(self._actions):
                    if not state.is_running:
                        return

                    while state.is_paused:
                        await asyncio.sleep(self.PAUSE_POLL_MS / 1000.0)
                        if not state.is_running:
                            return

                    index = state.current_action_index
                    action = self._actions[index]

                    try:
                        await action.execute(token)
                    except Exception as e:
                        logger.error(f"Timeline action {action.id} failed: {e}")
                        state.is_failed = True
                        state.is_running = False
                        state.is_paused = False
                        state.last_error = e
                        if self._config.on_error is not None:
                            self._config.on_error(e)
                        raise

                    if self._skip_pending:
                        self._skip_pending = False
                    else:
                        state.elapsed_time += action.duration
                        state.current_action_index = index + 1
                    if self._config.on_update is not None:
                        self._config.on_update(self.get_progress())

                if self._config.loop and state.is_running:
                    state.current_action_index = 0
                    state.elapsed_time = 0.0
                    if not self._actions:
                        await asyncio.sleep(self.PAUSE_POLL_MS / 1000.0)
                    continue
                break

            state.is_running = False
            state.is_paused = False
            if self._config.on_complete is not None:
                self._config.on_complete()
        except asyncio.CancelledError:
            state.is_running = False
            state.is_paused = False
            token.cancel()
            raise

    def pause(self) -> None:
        if self._state.is_running:
            self._state.is_paused = True

    def resume(self) -> None:
        if self._state.is_running:
            self._state.is_paused = False

    def stop(self) -> None:
        """Stop running and cancel the active token."""
        self._state.is_running = False
        self._state.is_paused = False
        if self._token is not None:
            self._token.cancel()

    def reset(self) -> None:
        self.stop()
        self._state.current_action_index = 0
        self._state.elapsed_time = 0.0

    def skip_to(self, index: int) -> None:
        """Make ``index`` the next action to run. Out-of-range is ignored."""
        if 0 <= index < len(self._actions):
            self._state.current_action_index = index
            self._state.elapsed_time = sum(a.duration for a in self._actions[:index])
            self._skip_pending = self._state.is_running

    def get_progress(self) -> float:
        total = self._state.total_duration
        if total <= 0:
            return 0.0
        return max(0.0, min(self._state.elapsed_time / total, 1.0))

    def get_state(self) -> TimelineState:
        return replace(self._state)

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def is_paused(self) -> bool:
        return self._state.is_paused

    @classmethod
    async def run(
        cls,
        actions: Sequence[TimelineAction],
        config: Optional[TimelineConfig] = None,
    ) -> "TimelineRunner":
        """Create a runner for ``actions``, run it to completion and return it."""
        runner = cls(actions, replace(config, auto_start=False) if config else None)
        await runner.start()
        return runner
