"""Tests for SequenceBuilder."""

import asyncio

from slotflow.timeline.actions import (
    CallbackAction,
    ConditionalAction,
    DelayAction,
    LoopAction,
    ParallelAction,
    SequenceAction,
)
from slotflow.timeline.builder import SequenceBuilder
from slotflow.timeline.runner import TimelineRunner


class TestSequenceBuilder:
    """Fluent accumulation of timeline actions."""

    def test_builds_actions_in_order(self):
        """Each fluent call appends one action"""
        actions = (
            SequenceBuilder.create()
            .call(lambda: None, 100)
            .delay(200)
            .parallel([DelayAction(10), DelayAction(30)])
            .parallel_calls([lambda: None])
            .build()
        )

        assert [type(a) for a in actions] == [CallbackAction, DelayAction, ParallelAction, ParallelAction]
        assert actions[0].duration == 100
        assert actions[2].duration == 30

    def test_build_returns_snapshot(self):
        """Later appends do not change an earlier build"""
        builder = SequenceBuilder.create().delay(10)
        first = builder.build()
        builder.delay(20)

        assert isinstance(first, tuple)
        assert len(first) == 1
        assert len(builder) == 2

    def test_loop_and_conditional_use_fresh_builders(self):
        """Loop and branch bodies are assembled separately"""
        actions = (
            SequenceBuilder.create()
            .loop(2, lambda b: b.delay(50).delay(25))
            .if_(lambda: True, lambda b: b.delay(100), lambda b: b.delay(300))
            .build()
        )

        loop, conditional = actions
        assert isinstance(loop, LoopAction)
        assert loop.duration == 150
        assert isinstance(conditional, ConditionalAction)
        assert conditional.duration == 300

    def test_to_action_wraps_sequence(self):
        """to_action returns one sequence with the summed duration"""
        action = SequenceBuilder.create().delay(10).delay(15).to_action()
        assert isinstance(action, SequenceAction)
        assert action.duration == 25

    def test_add_and_add_all(self):
        """Prebuilt actions can be appended directly"""
        builder = SequenceBuilder.create().add(DelayAction(1)).add_all([DelayAction(2), DelayAction(3)])
        assert [a.duration for a in builder.build()] == [1, 2, 3]

    def test_await_waits_for_factory(self):
        """await_ runs the factory when executed and awaits its result"""
        order = []

        async def external():
            await asyncio.sleep(0)
            order.append("external")

        actions = (
            SequenceBuilder.create()
            .await_(external)
            .call(lambda: order.append("next"))
            .build()
        )
        asyncio.run(TimelineRunner.run(actions))

        assert order == ["external", "next"]
