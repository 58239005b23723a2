"""Tests for TimelineRunner."""

import asyncio

import pytest

from slotflow.timeline.actions import CallbackAction, DelayAction
from slotflow.timeline.builder import SequenceBuilder
from slotflow.timeline.runner import TimelineConfig, TimelineRunner


class TestRunnerLifecycle:
    """Start, completion and progress."""

    def test_runs_actions_and_completes(self):
        """All actions run in order and on_complete fires once"""
        order = []
        completed = []
        actions = (
            SequenceBuilder.create()
            .call(lambda: order.append(1), 10)
            .call(lambda: order.append(2), 10)
            .build()
        )
        runner = TimelineRunner(actions, TimelineConfig(on_complete=lambda: completed.append(True)))

        asyncio.run(runner.start())

        assert order == [1, 2]
        assert completed == [True]
        assert not runner.is_running
        assert runner.get_progress() == 1.0

    def test_progress_reported_after_each_action(self):
        """on_update receives declared-duration progress"""
        updates = []
        actions = SequenceBuilder.create().call(lambda: None, 100).call(lambda: None, 300).build()
        runner = TimelineRunner(actions, TimelineConfig(on_update=updates.append))

        asyncio.run(runner.start())

        assert updates == [0.25, 1.0]

    def test_progress_is_zero_without_duration(self):
        """A timeline with no declared duration reports zero progress"""
        runner = TimelineRunner([CallbackAction(lambda: None)])
        asyncio.run(runner.start())
        assert runner.get_progress() == 0.0

    def test_state_is_a_copy(self):
        """get_state returns a snapshot"""
        runner = TimelineRunner([DelayAction(5)])
        state = runner.get_state()
        state.current_action_index = 99
        assert runner.get_state().current_action_index == 0
        assert runner.get_state().total_duration == 5

    def test_run_helper_returns_finished_runner(self):
        """TimelineRunner.run drives the actions to completion"""
        calls = []
        runner = asyncio.run(TimelineRunner.run([CallbackAction(lambda: calls.append(1))]))
        assert calls == [1]
        assert not runner.is_running


class TestRunnerFailure:
    """A failing action fails the whole run."""

    def test_error_marks_failed_and_reraises(self):
        """on_error fires once and the exception leaves start()"""
        errors = []
        completed = []

        def explode():
            raise RuntimeError("bad action")

        actions = [CallbackAction(explode), CallbackAction(lambda: completed.append("never"))]
        runner = TimelineRunner(
            actions,
            TimelineConfig(on_error=errors.append, on_complete=lambda: completed.append(True)),
        )

        with pytest.raises(RuntimeError, match="bad action"):
            asyncio.run(runner.start())

        state = runner.get_state()
        assert state.is_failed
        assert not state.is_running
        assert isinstance(state.last_error, RuntimeError)
        assert len(errors) == 1
        assert completed == []


class TestRunnerControl:
    """Stop, pause, resume, skip and loop."""

    def test_stop_cancels_token_and_skips_remaining(self):
        """stop() cancels the token; later actions never start"""
        calls = []

        async def scenario():
            runner = TimelineRunner([
                DelayAction(10_000),
                CallbackAction(lambda: calls.append("late")),
            ])
            task = asyncio.create_task(runner.start())
            await asyncio.sleep(0.01)
            runner.stop()
            await asyncio.wait_for(task, timeout=1.0)
            return runner

        runner = asyncio.run(scenario())
        assert calls == []
        assert runner.token.is_cancelled
        assert not runner.is_running

    def test_stop_during_final_action_still_completes(self):
        """The running check happens before each action, not after"""
        completed = []
        holder = {}

        def stop_now():
            holder["runner"].stop()

        runner = TimelineRunner([CallbackAction(stop_now)], TimelineConfig(on_complete=lambda: completed.append(True)))
        holder["runner"] = runner

        asyncio.run(runner.start())

        assert completed == [True]

    def test_pause_and_resume(self):
        """A paused runner holds before the next action"""
        calls = []

        async def scenario():
            runner = TimelineRunner([
                CallbackAction(lambda: calls.append("first")),
                CallbackAction(lambda: calls.append("second")),
            ])
            runner.pause()
            assert not runner.is_paused

            holder = {}
            first = runner.get_actions()[0]
            original = first.callback

            def pause_after_first():
                original()
                runner.pause()

            first.callback = pause_after_first
            task = asyncio.create_task(runner.start())
            await asyncio.sleep(0.05)
            holder["while_paused"] = list(calls)
            assert runner.is_paused
            runner.resume()
            await asyncio.wait_for(task, timeout=1.0)
            return holder

        holder = asyncio.run(scenario())
        assert holder["while_paused"] == ["first"]
        assert calls == ["first", "second"]

    def test_skip_to_sets_next_action_and_elapsed(self):
        """skip_to jumps ahead and accounts for the skipped prefix"""
        calls = []
        holder = {}

        def jump():
            calls.append(0)
            holder["runner"].skip_to(2)

        runner = TimelineRunner([
            CallbackAction(jump, 100),
            CallbackAction(lambda: calls.append(1), 100),
            CallbackAction(lambda: calls.append(2), 200),
        ])
        holder["runner"] = runner

        asyncio.run(runner.start())

        assert calls == [0, 2]
        assert runner.get_progress() == 1.0

    def test_skip_to_out_of_range_is_ignored(self):
        """Invalid indices leave the runner untouched"""
        runner = TimelineRunner([DelayAction(10)])
        runner.skip_to(5)
        runner.skip_to(-1)
        assert runner.get_state().current_action_index == 0

    def test_loop_repeats_until_stopped(self):
        """A looping timeline restarts after each pass"""
        passes = []
        holder = {}

        def count_pass():
            passes.append(1)
            if len(passes) == 3:
                holder["runner"].stop()

        runner = TimelineRunner([CallbackAction(count_pass)], TimelineConfig(loop=True))
        holder["runner"] = runner

        asyncio.run(runner.start())

        assert len(passes) == 3

    def test_auto_start_schedules_run(self):
        """auto_start starts the runner when actions are set inside a loop"""
        calls = []

        async def scenario():
            TimelineRunner([CallbackAction(lambda: calls.append(1))], TimelineConfig(auto_start=True))
            await asyncio.sleep(0.01)

        asyncio.run(scenario())
        assert calls == [1]

    def test_start_while_running_is_noop(self):
        """A second start() during a run returns immediately"""
        async def scenario():
            runner = TimelineRunner([DelayAction(30)])
            task = asyncio.create_task(runner.start())
            await asyncio.sleep(0)
            await asyncio.wait_for(runner.start(), timeout=0.01)
            await task

        asyncio.run(scenario())
