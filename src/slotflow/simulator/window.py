"""
Simulator window using pygame.

Draws the symbol grid as the presenter animates it and lets a developer
replay demo spins, cancel flows and fake feature start/end facts.
"""

import pygame
import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from slotflow.config.settings import Settings, TriggerPolicy
from slotflow.core.events import Event, EventBus, feature_ended_event, feature_started_event
from slotflow.grid.view import SymbolGrid
from slotflow.presentation.controller import ResultPresentationController
from slotflow.presentation.protocol import PayloadError
from slotflow.simulator.demo import demo_spins

logger = logging.getLogger(__name__)


# Symbol tile colors; anything else is drawn grey
SYMBOL_COLORS: Dict[str, tuple[int, int, int]] = {
    "A": (231, 76, 60),
    "K": (52, 152, 219),
    "Q": (155, 89, 182),
    "J": (46, 204, 113),
    "10": (241, 196, 15),
    "P": (230, 126, 34),
}


@dataclass
class WindowConfig:
    """Simulator window configuration."""
    width: int = 1100
    height: int = 720
    title: str = "slotflow simulator"
    fps: int = 60

    # Grid origin inside the window
    grid_x: int = 30
    grid_y: int = 60

    # Colors
    bg_color: tuple[int, int, int] = (20, 20, 30)
    panel_color: tuple[int, int, int] = (40, 40, 50)
    text_color: tuple[int, int, int] = (200, 200, 220)
    accent_color: tuple[int, int, int] = (100, 150, 255)


class SimulatorWindow:
    """
    Desktop window for watching result flows.

    Keyboard Mapping:
        SPACE: Present the next demo spin
        C: Cancel the active flow
        F: Toggle a feature (feature-started / feature-ended)
        T: Cycle the win presentation trigger
        D: Toggle debug panel
        L: Toggle log viewer
        ESC/Q: Exit simulator
    """

    def __init__(
        self,
        grid: SymbolGrid,
        controller: ResultPresentationController,
        event_bus: EventBus,
        config: WindowConfig | None = None,
    ) -> None:
        self.config = config or WindowConfig()
        self.grid = grid
        self.controller = controller
        self.event_bus = event_bus

        # Pygame setup
        self._screen: pygame.Surface | None = None
        self._clock: pygame.time.Clock | None = None
        self._running = False
        self._frame_count = 0
        self._show_debug = True

        self._layout: dict[str, pygame.Rect] = {}
        self._font: pygame.font.Font | None = None
        self._small_font: pygame.font.Font | None = None

        # Demo playback
        self._demos = demo_spins()
        self._demo_index = 0
        self._spin_task: Optional[asyncio.Task] = None
        self._feature_active = False

        # Recent facts for the debug panel
        self._facts: deque[str] = deque(maxlen=14)
        self._unsubscribe = self.event_bus.subscribe_all(self._on_fact)

        # Log viewer
        self._show_log = False
        self._log_buffer: list[str] = []
        self._max_log_lines = 20
        self._log_handler: logging.Handler | None = None
        self._setup_log_capture()

        logger.info("SimulatorWindow created")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        grid: SymbolGrid,
        controller: ResultPresentationController,
        event_bus: EventBus,
    ) -> "SimulatorWindow":
        config = WindowConfig(
            width=settings.simulator_window_width,
            height=settings.simulator_window_height,
            fps=settings.simulator_fps,
        )
        return cls(grid, controller, event_bus, config)

    def _setup_log_capture(self) -> None:
        """Setup log capturing for the log viewer."""

        class SimulatorLogHandler(logging.Handler):
            def __init__(self, window: 'SimulatorWindow'):
                super().__init__()
                self.window = window

            def emit(self, record):
                msg = self.format(record)
                self.window._log_buffer.append(msg)
                if len(self.window._log_buffer) > self.window._max_log_lines * 2:
                    self.window._log_buffer = self.window._log_buffer[-self.window._max_log_lines:]

        self._log_handler = SimulatorLogHandler(self)
        self._log_handler.setFormatter(logging.Formatter('%(levelname).1s %(name)s: %(message)s'))
        logging.getLogger().addHandler(self._log_handler)

    def _on_fact(self, event: Event) -> None:
        self._facts.append(f"{event.type.value} [{event.source}]")

    def _init_pygame(self) -> None:
        """Initialize pygame and create window."""
        pygame.init()
        pygame.display.set_caption(self.config.title)

        self._screen = pygame.display.set_mode(
            (self.config.width, self.config.height),
            pygame.DOUBLEBUF
        )
        self._clock = pygame.time.Clock()

        pygame.font.init()
        # SysFont falls back to the default font when none of these exist
        self._font = pygame.font.SysFont("dejavusans,notosans,helvetica", 18)
        self._small_font = pygame.font.SysFont("dejavusans,notosans,helvetica", 13)

        self._calculate_layout()
        logger.info(f"Pygame initialized: {self.config.width}x{self.config.height}")

    def _calculate_layout(self) -> None:
        """Calculate positions for all UI elements."""
        w, h = self.config.width, self.config.height

        debug_w = 320
        self._layout = {
            "grid": pygame.Rect(
                self.config.grid_x,
                self.config.grid_y,
                int(self.grid.width),
                int(self.grid.height),
            ),
            "debug": pygame.Rect(w - debug_w - 20, 50, debug_w, h - 100),
        }

    # -- Input ---------------------------------------------------------------

    def _handle_events(self) -> None:
        """Process pygame events."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self._running = False
            elif event.type == pygame.KEYDOWN:
                self._handle_keydown(event)

    def _handle_keydown(self, event: pygame.event.Event) -> None:
        """Handle key press."""
        key = event.key

        if key == pygame.K_ESCAPE or key == pygame.K_q:
            self._running = False
        elif key == pygame.K_d:
            self._show_debug = not self._show_debug
        elif key == pygame.K_l:
            self._show_log = not self._show_log
        elif key == pygame.K_SPACE:
            self._start_next_spin()
        elif key == pygame.K_c:
            self.controller.cancel()
        elif key == pygame.K_f:
            self._toggle_feature()
        elif key == pygame.K_t:
            self._cycle_trigger()

    def _start_next_spin(self) -> None:
        payload = self._demos[self._demo_index % len(self._demos)]
        self._demo_index += 1

        # Stop the running flow before the landed grid replaces its symbols
        if self.controller.is_active():
            self.controller.cancel()
        self.grid.load_matrix(payload["round"]["matrixString"])
        self._spin_task = asyncio.get_running_loop().create_task(self._present(payload))

    async def _present(self, payload: Dict[str, Any]) -> None:
        try:
            await self.controller.handle_spin_payload(payload)
        except PayloadError as e:
            logger.error(f"Demo payload rejected: {e}")
        except Exception as e:
            logger.exception(f"Presentation failed: {e}")

    def _toggle_feature(self) -> None:
        spin_id = self.controller.active_spin_id
        if self._feature_active:
            self.event_bus.emit(feature_ended_event(spin_id=spin_id, source="keyboard"))
        else:
            self.event_bus.emit(feature_started_event(spin_id=spin_id, source="keyboard"))
        self._feature_active = not self._feature_active

    def _cycle_trigger(self) -> None:
        policies: List[TriggerPolicy] = list(TriggerPolicy)
        current = self.controller.get_config().win_presentation_trigger
        following = policies[(policies.index(current) + 1) % len(policies)]
        self.controller.set_config(win_presentation_trigger=following)

    # -- Rendering -----------------------------------------------------------

    def _render(self) -> None:
        """Render all UI elements."""
        if not self._screen:
            return

        self._screen.fill(self.config.bg_color)

        self._render_grid()
        if self._show_debug:
            self._render_debug_panel()
        if self._show_log:
            self._render_log_panel()
        self._render_title_bar()

        pygame.display.flip()

    def _render_grid(self) -> None:
        """Draw every visible symbol instance at its animated position."""
        rect = self._layout["grid"]
        pygame.draw.rect(self._screen, self.config.panel_color, rect.inflate(16, 16), border_radius=6)

        # Clip so refills entering from above stay hidden until they land
        self._screen.set_clip(rect)
        for inst in self.grid.instances():
            if not inst.visible or inst.alpha <= 0:
                continue

            size_w = int(self.grid.cell_width * inst.scale)
            size_h = int(self.grid.cell_height * inst.scale)
            if size_w <= 0 or size_h <= 0:
                continue

            tile = pygame.Surface((size_w, size_h), pygame.SRCALPHA)
            color = SYMBOL_COLORS.get(inst.symbol_id, (120, 120, 130))
            alpha = int(max(0.0, min(1.0, inst.alpha)) * 255)
            pygame.draw.rect(tile, (*color, alpha), tile.get_rect(), border_radius=10)

            if self._font:
                label = self._font.render(inst.symbol_id, True, (255, 255, 255))
                label.set_alpha(alpha)
                tile.blit(label, label.get_rect(center=(size_w // 2, size_h // 2)))

            center = (rect.x + int(inst.x), rect.y + int(inst.y))
            self._screen.blit(tile, tile.get_rect(center=center))
        self._screen.set_clip(None)

    def _render_debug_panel(self) -> None:
        """Render the flow status panel."""
        rect = self._layout["debug"]
        pygame.draw.rect(self._screen, self.config.panel_color, rect, border_radius=5)

        if not self._small_font:
            return

        context = self.controller.state.context
        config = self.controller.get_config()
        lines = [
            f"FPS: {self._clock.get_fps():.1f}" if self._clock else "FPS: --",
            f"Phase: {self.controller.phase.name}",
            f"Flow: {self.controller.active_flow_id or '-'}",
            f"Spin: {self.controller.active_spin_id or '-'}",
            f"Tier: {context.tier or '-'}",
            f"Trigger: {config.win_presentation_trigger.value}",
            f"Feature: {'ON' if self._feature_active else 'off'}",
            "",
            "---- FACTS ----",
            *self._facts,
            "",
            "SPACE spin  C cancel  F feature",
            "T trigger  D debug  L log  Q quit",
        ]

        y = rect.y + 10
        for line in lines:
            text_surface = self._small_font.render(line, True, self.config.text_color)
            self._screen.blit(text_surface, (rect.x + 10, y))
            y += 18
            if y > rect.bottom - 18:
                break

    def _render_log_panel(self) -> None:
        """Render the log viewer panel."""
        if not self._small_font:
            return

        rect = pygame.Rect(10, self.config.height - 300, self.config.width - 380, 280)

        surf = pygame.Surface((rect.width, rect.height), pygame.SRCALPHA)
        surf.fill((20, 25, 35, 230))
        self._screen.blit(surf, rect.topleft)
        pygame.draw.rect(self._screen, (60, 80, 100), rect, 1, border_radius=5)

        y = rect.y + 8
        for line in self._log_buffer[-self._max_log_lines:]:
            if line.startswith('E'):
                color = (255, 100, 100)
            elif line.startswith('W'):
                color = (255, 200, 100)
            elif line.startswith('I'):
                color = (150, 200, 150)
            else:
                color = (150, 150, 170)

            display_line = line[:95] + "..." if len(line) > 98 else line
            text_surf = self._small_font.render(display_line, True, color)
            self._screen.blit(text_surf, (rect.x + 8, y))
            y += 13

            if y > rect.bottom - 10:
                break

    def _render_title_bar(self) -> None:
        if not self._font:
            return
        title = f"slotflow | {self.controller.phase.name}"
        text_surface = self._font.render(title, True, self.config.accent_color)
        self._screen.blit(text_surface, (20, 15))

    # -- Loop ----------------------------------------------------------------

    async def run(self) -> None:
        """Main simulator loop."""
        self._init_pygame()
        self._running = True
        logger.info("Simulator started")

        while self._running:
            self._handle_events()
            self._render()

            if self._clock:
                self._clock.tick(self.config.fps)
            self._frame_count += 1

            # Yield so the tween driver and the active flow can advance
            await asyncio.sleep(0)

        self._cleanup()

    def _cleanup(self) -> None:
        """Clean up pygame resources."""
        self.controller.cancel()
        self._unsubscribe()
        if self._log_handler is not None:
            logging.getLogger().removeHandler(self._log_handler)
        pygame.quit()
        logger.info("Simulator stopped")

    def stop(self) -> None:
        """Stop the simulator."""
        self._running = False
