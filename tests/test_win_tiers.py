"""Tests for win tier resolution and win mapping."""

import pytest

from slotflow.presentation.protocol import StepWin
from slotflow.presentation.wins import (
    DEFAULT_HOLD_MS,
    WinTier,
    hold_ms_for,
    map_step_wins,
    resolve_win_tier,
    win_multiplier,
)


class TestResolveWinTier:
    """Tier boundaries relative to the bet."""

    @pytest.mark.parametrize(
        "total_win,expected",
        [
            (99.9, WinTier.NORMAL),
            (100, WinTier.BIG),
            (199.9, WinTier.BIG),
            (200, WinTier.MEGA),
            (499.9, WinTier.MEGA),
            (500, WinTier.EPIC),
            (0, WinTier.NONE),
            (-5, WinTier.NONE),
        ],
    )
    def test_boundaries_for_bet_of_ten(self, total_win, expected):
        """Boundaries at 10x, 20x and 50x"""
        assert resolve_win_tier(total_win, 10) == expected

    def test_monotonic_in_multiplier(self):
        """Larger multipliers never resolve to a smaller tier"""
        order = list(WinTier)
        tiers = [resolve_win_tier(win, 1) for win in range(0, 80)]
        ranks = [order.index(tier) for tier in tiers]
        assert ranks == sorted(ranks)

    def test_zero_bet_with_win_is_epic(self):
        """A positive win on a zero bet counts as unbounded"""
        assert resolve_win_tier(5, 0) == WinTier.EPIC
        assert win_multiplier(5, 0) == 0.0

    def test_big_tiers(self):
        """big, mega and epic trigger the big-win show"""
        assert [t.is_big for t in WinTier] == [False, False, True, True, True]

    def test_default_holds(self):
        """Default holds per tier"""
        assert hold_ms_for(WinTier.EPIC) == 5000
        assert hold_ms_for(WinTier.NORMAL) == 1500
        assert hold_ms_for(WinTier.NONE) == 0
        assert DEFAULT_HOLD_MS[WinTier.MEGA] == 4000


class TestMapStepWins:
    """Server wins to highlight records."""

    def test_maps_positions_and_defaults(self):
        """line_id falls back to the index and multiplier to 1"""
        wins = [
            StepWin.model_validate({
                "winType": "LINE",
                "symbol": "K",
                "lineId": 17,
                "positions": [{"row": 0, "col": 0}, {"row": 0, "col": 1}, {"row": 0, "col": 2}],
                "amount": 50,
            }),
            StepWin(win_type="CLUSTER", symbol="A", positions=[], amount=20, multiplier=2),
        ]

        mapped = map_step_wins(wins)

        assert mapped[0].line_id == 17
        assert mapped[0].symbols == ["K", "K", "K"]
        assert mapped[0].positions == [(0, 0), (0, 1), (0, 2)]
        assert mapped[0].multiplier == 1.0
        assert mapped[1].line_id == 1
        assert mapped[1].multiplier == 2
