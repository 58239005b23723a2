"""Win tiers and win highlight data."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Sequence, Tuple

from slotflow.presentation.protocol import StepWin


class WinTier(str, Enum):
    """Categorical win size relative to the bet."""

    NONE = "none"
    NORMAL = "normal"
    BIG = "big"
    MEGA = "mega"
    EPIC = "epic"

    @property
    def is_big(self) -> bool:
        return self in (WinTier.BIG, WinTier.MEGA, WinTier.EPIC)


# Lower multiplier bound of each tier, highest first
TIER_THRESHOLDS: Tuple[Tuple[float, WinTier], ...] = (
    (50.0, WinTier.EPIC),
    (20.0, WinTier.MEGA),
    (10.0, WinTier.BIG),
)

DEFAULT_HOLD_MS: Dict[WinTier, float] = {
    WinTier.NONE: 0.0,
    WinTier.NORMAL: 1500.0,
    WinTier.BIG: 3000.0,
    WinTier.MEGA: 4000.0,
    WinTier.EPIC: 5000.0,
}


def win_multiplier(total_win: float, total_bet: float) -> float:
    """``total_win / total_bet``, or 0 when the bet is not positive."""
    if total_bet <= 0:
        return 0.0
    return total_win / total_bet


def resolve_win_tier(total_win: float, total_bet: float) -> WinTier:
    """Bucket a win by its bet multiplier.

    A positive win on a zero bet counts as an unbounded multiplier.
    """
    if total_win <= 0:
        return WinTier.NONE
    multiplier = total_win / total_bet if total_bet > 0 else float("inf")
    for threshold, tier in TIER_THRESHOLDS:
        if multiplier >= threshold:
            return tier
    return WinTier.NORMAL


def hold_ms_for(tier: WinTier, holds: Mapping[WinTier, float] = DEFAULT_HOLD_MS) -> float:
    return float(holds.get(tier, 0.0))


@dataclass(frozen=True)
class WinData:
    """Highlight record for one win line/cluster."""

    line_id: int
    symbols: List[str] = field(default_factory=list)
    positions: List[Tuple[int, int]] = field(default_factory=list)
    amount: float = 0.0
    multiplier: float = 1.0


def map_step_wins(wins: Sequence[StepWin]) -> List[WinData]:
    """Convert server step wins into highlight records.

    ``line_id`` falls back to the win's index and ``multiplier`` to 1.
    """
    return [
        WinData(
            line_id=win.line_id if win.line_id is not None else index,
            symbols=[win.symbol] * len(win.positions),
            positions=[p.key for p in win.positions],
            amount=win.amount,
            multiplier=win.multiplier if win.multiplier is not None else 1.0,
        )
        for index, win in enumerate(wins)
    ]
