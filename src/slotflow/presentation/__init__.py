"""Spin-result presentation: payload models, cascade steps and flow control."""

from slotflow.presentation.protocol import (
    CascadeStep,
    PayloadError,
    ResultStep,
    SpinResult,
    StepWin,
    parse_spin_result,
    parse_spin_steps,
)
from slotflow.presentation.wins import WinData, WinTier, map_step_wins, resolve_win_tier
from slotflow.presentation.steps import StepSequencePresenter
from slotflow.presentation.controller import ResultPresentationController

__all__ = [
    "CascadeStep",
    "PayloadError",
    "ResultPresentationController",
    "ResultStep",
    "SpinResult",
    "StepSequencePresenter",
    "StepWin",
    "WinData",
    "WinTier",
    "map_step_wins",
    "parse_spin_result",
    "parse_spin_steps",
    "resolve_win_tier",
]
