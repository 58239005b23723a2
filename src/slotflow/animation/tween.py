"""Property tweens that settle awaitables.

A tween interpolates numeric attributes of a target object from their
current values to new values over a duration. ``Tweener.to`` returns an
``asyncio.Future`` that resolves when the tween finishes *or* is killed,
so callers awaiting a killed tween never hang.

Tweens are advanced by ``update(delta_ms)``. When an event loop is
running, the tweener drives itself with a frame task while any tween is
active, so presenters can simply await the returned futures.
"""

from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
import asyncio
import logging

from slotflow.animation.easing import Easing, EasingFunc, get_easing

logger = logging.getLogger(__name__)


@dataclass
class Tween:
    """One running tween.

    Attributes:
        target: Object whose attributes are animated
        props: Attribute name -> (start, end); start is captured on first frame
        duration_ms: Tween length after the delay
        ease: Easing function
        delay_ms: Wait before the tween begins
        done: Future resolved on completion or kill
    """

    target: Any
    props: Dict[str, Tuple[Optional[float], float]]
    duration_ms: float
    ease: EasingFunc
    delay_ms: float
    done: asyncio.Future
    elapsed_ms: float = 0.0
    started: bool = False
    _killed: bool = field(default=False, repr=False)

    def _begin(self) -> None:
        self.props = {
            name: (float(getattr(self.target, name)), end)
            for name, (_, end) in self.props.items()
        }
        self.started = True

    def _apply(self, t: float) -> None:
        eased = self.ease(t)
        for name, (start, end) in self.props.items():
            setattr(self.target, name, start + (end - start) * eased)

    def _settle(self) -> None:
        if not self.done.done():
            self.done.set_result(None)


class Tweener:
    """Manages all active property tweens."""

    def __init__(self, frame_ms: float = 16.0) -> None:
        self._tweens: List[Tween] = []
        self._frame_ms = frame_ms
        self._driver: Optional[asyncio.Task] = None
        self._speed = 1.0

    @property
    def active_count(self) -> int:
        return len(self._tweens)

    def set_speed(self, speed: float) -> None:
        """Global time scale (turbo); 1.0 is normal speed."""
        self._speed = max(0.01, speed)

    def to(
        self,
        target: Any,
        duration_ms: float,
        ease: Easing | str = Easing.LINEAR,
        delay_ms: float = 0.0,
        **props: float,
    ) -> asyncio.Future:
        """Tween ``props`` on ``target`` to the given values.

        Returns:
            Future resolved when the tween completes or is killed
        """
        loop = asyncio.get_running_loop()
        tween = Tween(
            target=target,
            props={name: (None, float(value)) for name, value in props.items()},
            duration_ms=max(0.0, duration_ms),
            ease=get_easing(ease),
            delay_ms=max(0.0, delay_ms),
            done=loop.create_future(),
        )

        if tween.duration_ms <= 0 and tween.delay_ms <= 0:
            tween._begin()
            tween._apply(1.0)
            tween._settle()
            return tween.done

        self._tweens.append(tween)
        self._ensure_driver(loop)
        return tween.done

    def kill(self, target: Any) -> int:
        """Stop every tween on ``target`` where it is, settling their futures.

        Returns:
            Number of tweens killed
        """
        killed = [t for t in self._tweens if t.target is target]
        for tween in killed:
            tween._killed = True
            tween._settle()
        if killed:
            self._tweens = [t for t in self._tweens if not t._killed]
        return len(killed)

    def kill_all(self) -> None:
        for tween in self._tweens:
            tween._killed = True
            tween._settle()
        self._tweens.clear()

    def is_tweening(self, target: Any) -> bool:
        return any(t.target is target for t in self._tweens)

    def update(self, delta_ms: float) -> None:
        """Advance all tweens by ``delta_ms`` of (scaled) time."""
        delta_ms *= self._speed
        finished: List[Tween] = []

        for tween in list(self._tweens):
            if tween._killed:
                continue
            tween.elapsed_ms += delta_ms
            if tween.elapsed_ms < tween.delay_ms:
                continue
            if not tween.started:
                tween._begin()

            if tween.duration_ms <= 0:
                t = 1.0
            else:
                t = min(1.0, (tween.elapsed_ms - tween.delay_ms) / tween.duration_ms)
            tween._apply(t)
            if t >= 1.0:
                finished.append(tween)

        if finished:
            self._tweens = [t for t in self._tweens if t not in finished]
            for tween in finished:
                tween._settle()

    def _ensure_driver(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._driver is None or self._driver.done():
            self._driver = loop.create_task(self._drive())

    async def _drive(self) -> None:
        loop = asyncio.get_running_loop()
        last = loop.time()
        while self._tweens:
            await asyncio.sleep(self._frame_ms / 1000.0)
            now = loop.time()
            try:
                self.update((now - last) * 1000.0)
            except Exception as e:
                logger.error(f"Tween update failed: {e}")
                self.kill_all()
            last = now
