"""Easing curves used by symbol tweens.

All functions take a normalized time t (0.0 to 1.0) and return a
normalized value. Overshooting curves may leave [0, 1] mid-way but always
end exactly on 1.0.
"""

from enum import Enum
from typing import Callable
import functools


class Easing(Enum):
    """Available easing curves, named after their tween-library aliases."""

    LINEAR = "linear"
    POWER2_IN = "power2.in"
    POWER2_OUT = "power2.out"
    POWER3_OUT = "power3.out"
    BACK_OUT = "back.out"
    BOUNCE_OUT = "bounce.out"


EasingFunc = Callable[[float], float]


def linear(t: float) -> float:
    return t


def power2_in(t: float) -> float:
    """Accelerate from zero velocity (symbols shrinking away)."""
    return t * t


def power2_out(t: float) -> float:
    return 1 - (1 - t) * (1 - t)


def power3_out(t: float) -> float:
    return 1 - pow(1 - t, 3)


def back_out(t: float, overshoot: float = 1.70158) -> float:
    """Overshoot the target slightly, then settle (refill drop-in)."""
    c3 = overshoot + 1
    return 1 + c3 * pow(t - 1, 3) + overshoot * pow(t - 1, 2)


def bounce_out(t: float) -> float:
    """Land and bounce (gravity drop)."""
    n1 = 7.5625
    d1 = 2.75

    if t < 1 / d1:
        return n1 * t * t
    if t < 2 / d1:
        t -= 1.5 / d1
        return n1 * t * t + 0.75
    if t < 2.5 / d1:
        t -= 2.25 / d1
        return n1 * t * t + 0.9375
    t -= 2.625 / d1
    return n1 * t * t + 0.984375


_EASING_FUNCTIONS: dict[Easing, EasingFunc] = {
    Easing.LINEAR: linear,
    Easing.POWER2_IN: power2_in,
    Easing.POWER2_OUT: power2_out,
    Easing.POWER3_OUT: power3_out,
    Easing.BACK_OUT: back_out,
    Easing.BOUNCE_OUT: bounce_out,
}


def get_easing(easing: Easing | str) -> EasingFunc:
    """Get an easing function by enum or alias.

    Aliases may carry a parameter for back curves, e.g. ``"back.out(1.2)"``.

    Raises:
        ValueError: If the name is not recognized
    """
    if isinstance(easing, str):
        name = easing.strip().lower()
        if name.startswith("back.out(") and name.endswith(")"):
            try:
                overshoot = float(name[len("back.out("):-1])
            except ValueError:
                raise ValueError(f"Unknown easing function: {easing}") from None
            return functools.partial(back_out, overshoot=overshoot)
        try:
            easing = Easing(name)
        except ValueError:
            raise ValueError(f"Unknown easing function: {easing}") from None

    return _EASING_FUNCTIONS[easing]


def interpolate(start: float, end: float, t: float, easing: Easing | str = Easing.LINEAR) -> float:
    """Interpolate between two values using an easing curve.

    ``t`` is clamped to [0, 1] before the curve is applied.
    """
    t = max(0.0, min(1.0, t))
    return start + (end - start) * get_easing(easing)(t)
