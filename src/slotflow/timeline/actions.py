"""Timeline actions.

Every action declares a ``duration`` in milliseconds. The runner uses it
only for progress reporting; nothing measures how long an action really
took. Actions receive the runner's ``CancellationToken`` and are expected
to honour it, otherwise a stopped timeline can hang on them.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence, Union
import asyncio
import inspect
import itertools
import logging

from slotflow.timeline.cancellation import CancellationToken, cancellable_sleep

logger = logging.getLogger(__name__)

ActionCallback = Callable[[], Union[None, Awaitable[Any]]]

_ids = itertools.count(1)


class ActionType(Enum):
    """Action type tags."""

    SEQUENCE = "sequence"
    PARALLEL = "parallel"
    DELAY = "delay"
    LOOP = "loop"
    CONDITIONAL = "conditional"
    CALLBACK = "callback"


def _sum_durations(actions: Iterable["TimelineAction"]) -> float:
    return sum(action.duration for action in actions)


async def _run_in_order(
    actions: Sequence["TimelineAction"],
    token: Optional[CancellationToken],
    check_between: bool,
) -> None:
    for action in actions:
        if check_between and token is not None and token.is_cancelled:
            return
        await action.execute(token)


class TimelineAction(ABC):
    """Base class for a unit of declared-duration, cancellable work.

    Attributes:
        id: Unique action identifier
        type: Action type tag
        duration: Declared duration in milliseconds
        priority: Informational only; never affects execution order
    """

    type: ActionType

    def __init__(self, duration: float = 0.0, priority: int = 0) -> None:
        self.id = f"{self.type.value}_{next(_ids)}"
        self.duration = float(duration)
        self.priority = priority

    @abstractmethod
    async def execute(self, token: Optional[CancellationToken] = None) -> None:
        """Run the action to completion or until cancelled."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, duration={self.duration:g})"


class DelayAction(TimelineAction):
    """Wait for ``duration`` ms; resolves early (without raising) on cancel."""

    type = ActionType.DELAY

    def __init__(self, duration: float, priority: int = 0) -> None:
        super().__init__(max(0.0, float(duration)), priority)

    async def execute(self, token: Optional[CancellationToken] = None) -> None:
        await cancellable_sleep(self.duration, token)


class CallbackAction(TimelineAction):
    """Invoke a function, awaiting its result when it returns an awaitable.

    Cancellation is checked before the call only.
    """

    type = ActionType.CALLBACK

    def __init__(self, callback: ActionCallback, duration: float = 0.0, priority: int = 0) -> None:
        super().__init__(duration, priority)
        self.callback = callback

    async def execute(self, token: Optional[CancellationToken] = None) -> None:
        if token is not None and token.is_cancelled:
            return
        result = self.callback()
        if inspect.isawaitable(result):
            await result


class SequenceAction(TimelineAction):
    """Run children one after another. Duration is the sum of the children."""

    type = ActionType.SEQUENCE

    def __init__(self, actions: Iterable[TimelineAction], priority: int = 0) -> None:
        self._actions: List[TimelineAction] = list(actions)
        super().__init__(_sum_durations(self._actions), priority)

    def get_actions(self) -> List[TimelineAction]:
        return list(self._actions)

    async def execute(self, token: Optional[CancellationToken] = None) -> None:
        await _run_in_order(self._actions, token, check_between=False)


class ParallelAction(TimelineAction):
    """Run children concurrently with the shared token.

    Completes when every child completes. Duration is the longest child,
    or 0 for an empty group.
    """

    type = ActionType.PARALLEL

    def __init__(self, actions: Iterable[TimelineAction] = (), priority: int = 0) -> None:
        self._actions: List[TimelineAction] = list(actions)
        super().__init__(self._max_duration(), priority)

    @classmethod
    def from_callbacks(cls, callbacks: Iterable[ActionCallback]) -> "ParallelAction":
        return cls(CallbackAction(callback) for callback in callbacks)

    def _max_duration(self) -> float:
        return max((action.duration for action in self._actions), default=0.0)

    def add_action(self, action: TimelineAction) -> "ParallelAction":
        self._actions.append(action)
        self.duration = self._max_duration()
        return self

    def get_actions(self) -> List[TimelineAction]:
        return list(self._actions)

    async def execute(self, token: Optional[CancellationToken] = None) -> None:
        if not self._actions:
            return
        await asyncio.gather(*(action.execute(token) for action in self._actions))


class LoopAction(TimelineAction):
    """Repeat children ``count`` times, sequentially.

    Cancellation is checked before every iteration and before every child.
    ``on_iteration`` receives the zero-based iteration index before the
    iteration's children run.
    """

    type = ActionType.LOOP

    def __init__(
        self,
        count: int,
        actions: Iterable[TimelineAction],
        on_iteration: Optional[Callable[[int], None]] = None,
        priority: int = 0,
    ) -> None:
        self.count = max(0, int(count))
        self._actions: List[TimelineAction] = list(actions)
        self.on_iteration = on_iteration
        self._current_iteration = 0
        super().__init__(_sum_durations(self._actions) * self.count, priority)

    @property
    def current_iteration(self) -> int:
        return self._current_iteration

    @property
    def remaining_iterations(self) -> int:
        return max(0, self.count - self._current_iteration)

    async def execute(self, token: Optional[CancellationToken] = None) -> None:
        for i in range(self.count):
            if token is not None and token.is_cancelled:
                return
            self._current_iteration = i
            if self.on_iteration is not None:
                self.on_iteration(i)
            await _run_in_order(self._actions, token, check_between=True)
        self._current_iteration = self.count


class ConditionalAction(TimelineAction):
    """Run one of two branches depending on ``condition()``.

    The condition is evaluated once, when the action executes. Duration is
    the longer of the two branches whichever one actually runs.
    """

    type = ActionType.CONDITIONAL

    def __init__(
        self,
        condition: Callable[[], bool],
        on_true: Iterable[TimelineAction],
        on_false: Iterable[TimelineAction] = (),
        priority: int = 0,
    ) -> None:
        self.condition = condition
        self.on_true: List[TimelineAction] = list(on_true)
        self.on_false: List[TimelineAction] = list(on_false)
        self.executed_branch: Optional[bool] = None
        super().__init__(
            max(_sum_durations(self.on_true), _sum_durations(self.on_false)),
            priority,
        )

    async def execute(self, token: Optional[CancellationToken] = None) -> None:
        if token is not None and token.is_cancelled:
            return
        self.executed_branch = bool(self.condition())
        branch = self.on_true if self.executed_branch else self.on_false
        await _run_in_order(branch, token, check_between=True)
