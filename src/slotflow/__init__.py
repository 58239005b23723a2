"""
slotflow - spin-result presentation pipeline for cascading slot games.

Drives server-reported spin steps (RESULT and CASCADE) through a cancellable
timeline, animates cascades against a symbol grid and emits milestone facts
on an event bus.
"""

__version__ = "0.1.0"
