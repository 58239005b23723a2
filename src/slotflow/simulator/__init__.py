"""Pygame simulator and demo spin payloads."""

from slotflow.simulator.demo import demo_spins

__all__ = ["demo_spins"]
