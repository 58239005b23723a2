"""Tests for application wiring and the headless runner."""

import asyncio
import logging

from slotflow.config.settings import GridSettings, PresentationSettings, Settings, StepTimings
from slotflow.main import build_app, run_headless
from slotflow.simulator.demo import INITIAL_MATRIX, demo_spins


def _fast_settings(**overrides):
    return Settings(
        env="headless",
        timings=StepTimings(
            result_win_display_ms=0,
            payline_step_ms=0,
            removal_ms=0,
            drop_ms=0,
            refill_ms=0,
            refill_stagger_ms=0,
            cascade_win_display_ms=0,
        ),
        presentation=PresentationSettings(
            count_up_ms=0,
            post_win_delay_ms=0,
            hold_normal_ms=0,
            hold_big_ms=0,
            hold_mega_ms=0,
            hold_epic_ms=0,
        ),
        **overrides,
    )


class TestBuildApp:
    """Components wired from settings."""

    def test_grid_from_settings(self):
        """Grid size and the initial matrix come from settings"""
        app = build_app(_fast_settings(grid=GridSettings(rows=4, cols=5, spares_per_column=3)))

        assert app.grid.rows == 4
        assert len(app.grid.column_pool(0)) == 7
        assert app.grid.to_matrix() == INITIAL_MATRIX
        assert app.presenter.view is app.grid

    def test_turbo_timings_reach_presenter(self):
        """The presenter gets turbo-scaled timings"""
        settings = Settings(presentation=PresentationSettings(turbo=True, turbo_speed_multiplier=4))
        app = build_app(settings)
        assert app.presenter.timings.drop_ms == settings.timings.drop_ms / 4


class TestHeadless:
    """Replay of the bundled demo spins."""

    def test_replays_every_demo(self, caplog):
        """Each demo spin completes and its facts are logged"""
        caplog.set_level(logging.INFO, logger="slotflow.main")

        asyncio.run(run_headless(_fast_settings()))

        completed = [r for r in caplog.records if "fact presentation-completed" in r.getMessage()]
        assert len(completed) == len(demo_spins())
        assert any("KAKQ10;10JPAP;QQPJK;PPKPQ" in r.getMessage() for r in caplog.records)

    def test_spin_summaries_come_from_history(self, caplog):
        """Each spin is summarised from that spin's facts only"""
        caplog.set_level(logging.INFO, logger="slotflow.main")

        asyncio.run(run_headless(_fast_settings()))

        messages = [r.getMessage() for r in caplog.records]
        assert "Spin demo-dup: 2 steps, tier: big" in messages
        assert "Spin demo-lose: 1 steps, tier: none" in messages
