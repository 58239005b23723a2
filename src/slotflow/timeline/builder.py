"""Fluent builder for ordered timeline action lists."""

from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple

from slotflow.timeline.actions import (
    ActionCallback,
    CallbackAction,
    ConditionalAction,
    DelayAction,
    LoopAction,
    ParallelAction,
    SequenceAction,
    TimelineAction,
)

BuilderFn = Callable[["SequenceBuilder"], Any]


class SequenceBuilder:
    """Accumulates timeline actions in order.

    Example:
        actions = (
            SequenceBuilder.create()
            .call(show_wins)
            .delay(500)
            .if_(lambda: total_win > 0, lambda b: b.call(count_up))
            .build()
        )
    """

    def __init__(self) -> None:
        self._actions: List[TimelineAction] = []

    @classmethod
    def create(cls) -> "SequenceBuilder":
        return cls()

    def call(self, callback: ActionCallback, duration: float = 0.0) -> "SequenceBuilder":
        """Append a callback. ``duration`` only feeds progress reporting."""
        self._actions.append(CallbackAction(callback, duration))
        return self

    def delay(self, duration: float) -> "SequenceBuilder":
        self._actions.append(DelayAction(duration))
        return self

    def parallel(self, actions: Iterable[TimelineAction]) -> "SequenceBuilder":
        self._actions.append(ParallelAction(actions))
        return self

    def parallel_calls(self, callbacks: Iterable[ActionCallback]) -> "SequenceBuilder":
        self._actions.append(ParallelAction.from_callbacks(callbacks))
        return self

    def loop(
        self,
        count: int,
        build: BuilderFn,
        on_iteration: Optional[Callable[[int], None]] = None,
    ) -> "SequenceBuilder":
        """Append a loop whose body is assembled by ``build`` on a fresh builder."""
        body = SequenceBuilder()
        build(body)
        self._actions.append(LoopAction(count, body.build(), on_iteration))
        return self

    def if_(
        self,
        condition: Callable[[], bool],
        on_true: BuilderFn,
        on_false: Optional[BuilderFn] = None,
    ) -> "SequenceBuilder":
        """Append a conditional; each branch is assembled on a fresh builder."""
        true_branch = SequenceBuilder()
        on_true(true_branch)
        false_branch = SequenceBuilder()
        if on_false is not None:
            on_false(false_branch)
        self._actions.append(
            ConditionalAction(condition, true_branch.build(), false_branch.build())
        )
        return self

    def add(self, action: TimelineAction) -> "SequenceBuilder":
        self._actions.append(action)
        return self

    def add_all(self, actions: Iterable[TimelineAction]) -> "SequenceBuilder":
        self._actions.extend(actions)
        return self

    def await_(
        self,
        factory: Callable[[], Awaitable[Any]],
        duration: float = 0.0,
    ) -> "SequenceBuilder":
        """Append a step that awaits whatever ``factory`` returns when it runs."""
        async def wait() -> None:
            await factory()

        self._actions.append(CallbackAction(wait, duration))
        return self

    def build(self) -> Tuple[TimelineAction, ...]:
        """Snapshot of the accumulated actions."""
        return tuple(self._actions)

    def to_action(self) -> SequenceAction:
        """Wrap the accumulated actions as a single sequence action."""
        return SequenceAction(self._actions)

    def __len__(self) -> int:
        return len(self._actions)
