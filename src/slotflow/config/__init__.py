"""Configuration for slotflow."""

from slotflow.config.settings import (
    GridSettings,
    PresentationSettings,
    Settings,
    StepTimings,
    TriggerPolicy,
    get_settings,
)

__all__ = [
    "GridSettings",
    "PresentationSettings",
    "Settings",
    "StepTimings",
    "TriggerPolicy",
    "get_settings",
]
