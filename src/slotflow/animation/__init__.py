"""Easing curves and property tweens for symbol animation."""

from slotflow.animation.easing import Easing, get_easing, interpolate
from slotflow.animation.tween import Tween, Tweener

__all__ = ["Easing", "Tween", "Tweener", "get_easing", "interpolate"]
