"""Tests for pydantic settings."""

from slotflow.config.settings import (
    PresentationSettings,
    Settings,
    StepTimings,
    TriggerPolicy,
    clamp_timing,
)


class TestStepTimings:
    """Timing defaults and clamping."""

    def test_defaults(self):
        """Default step timings"""
        timings = StepTimings()
        assert timings.removal_ms == 350
        assert timings.drop_ms == 400
        assert timings.refill_stagger_ms == 60

    def test_out_of_range_values_are_clamped(self):
        """Values outside the bounds are clamped instead of rejected"""
        timings = StepTimings(removal_ms=-20, refill_stagger_ms=50_000)
        assert timings.removal_ms == 0
        assert timings.refill_stagger_ms == 1_000

    def test_env_override(self, monkeypatch):
        """Environment variables override defaults"""
        monkeypatch.setenv("SLOTFLOW_TIMINGS_DROP_MS", "250")
        assert StepTimings().drop_ms == 250

    def test_scaled_divides_by_speed(self):
        """Turbo scaling divides every duration"""
        scaled = StepTimings(drop_ms=400).scaled(2)
        assert scaled.drop_ms == 200
        assert scaled.removal_ms == 175

    def test_clamp_timing(self):
        assert clamp_timing("turbo_speed_multiplier", 50) == 10


class TestPresentationSettings:
    """Trigger policy, holds and turbo."""

    def test_defaults(self):
        """SEQUENCE_END is the default trigger"""
        config = PresentationSettings()
        assert config.win_presentation_trigger == TriggerPolicy.SEQUENCE_END
        assert config.hold_ms()["epic"] == 5000
        assert config.hold_ms()["none"] == 0

    def test_turbo_scales_holds(self):
        """Holds shrink by the turbo multiplier when turbo is on"""
        config = PresentationSettings(turbo=True, turbo_speed_multiplier=2)
        assert config.speed == 2
        assert config.hold_ms()["big"] == 1500

    def test_trigger_from_string(self):
        """Trigger policy accepts its wire name"""
        config = PresentationSettings(win_presentation_trigger="FEATURE_END")
        assert config.win_presentation_trigger == TriggerPolicy.FEATURE_END


class TestSettings:
    """Top-level settings."""

    def test_nested_sections(self):
        """Nested sections carry their own defaults"""
        settings = Settings()
        assert settings.grid.rows == 4
        assert settings.grid.cols == 5
        assert settings.grid.symbol_scale == 0.82

    def test_headless_env(self, monkeypatch):
        """SLOTFLOW_ENV selects the run mode"""
        monkeypatch.setenv("SLOTFLOW_ENV", "headless")
        assert not Settings().is_simulator

    def test_effective_timings_apply_turbo(self):
        """Turbo halves step timings with the default multiplier"""
        settings = Settings(presentation=PresentationSettings(turbo=True))
        assert settings.effective_timings.drop_ms == settings.timings.drop_ms / 2
