"""
Interactive viewer for the escape-time renderer.

Contains the EscapeTimeApp class which handles:
- Window setup and main loop
- User input (click to zoom, keyboard controls)
- Driving the progressive renderer one band per frame
- Showing progress and throughput in the window caption

Controls:
    - Click: Centre on the clicked point and zoom in
    - +/-: Zoom in/out around the centre
    - J: Toggle Julia mode (the view centre becomes the Julia constant)
    - N: Toggle normalised (smooth) colouring
    - F / C: Next formula / next colour map
    - 1, 2, ...: Apply a preset from settings.json
    - S: Stop the current render
    - R: Reset to default view
    - ESC: Quit
"""

import logging

import pygame

from .compute import warmup_jit
from .display import SurfaceSink
from .renderer import ProgressiveRenderer
from .settings import build_model, get_preset, load_settings

logger = logging.getLogger(__name__)


class EscapeTimeApp:
    """
    Main application class for the viewer.

    Handles the pygame window and event loop, and wires the renderer's
    signals to the window caption.
    """

    FPS = 60

    def __init__(self, width=None, height=None, max_iter=None, settings=None):
        """
        Initialize the application.

        Args:
            width: Window width in pixels (default from settings)
            height: Window height in pixels (default from settings)
            max_iter: Maximum iteration count (default from settings)
            settings: Settings dict (default: load_settings())
        """
        self.settings = settings if settings is not None else load_settings()
        self.model = build_model(self.settings, width, height)
        if max_iter is not None:
            self.model.set_max_iterations(max_iter)
        self.zoom_factor = float(self.settings.get('zoom_factor', 2))

        # Pygame state (initialized in run())
        self.screen = None
        self.clock = None
        self.renderer = None

        # Caption state, updated from renderer signals
        self.progress = 0.0
        self.rate = 0.0
        self.status = ''

        self.running = False

    def run(self):
        """Run the application main loop."""
        self._init_pygame()
        self.attach(self.screen, on_flush=pygame.display.update)
        warmup_jit(self.model.formulas)
        self.renderer.start()

        self.running = True
        while self.running:
            for event in pygame.event.get():
                self.handle_event(event)
            # One band per frame keeps the window responsive
            self.renderer.step()
            self.clock.tick(self.FPS)

        pygame.quit()

    def _init_pygame(self):
        """Initialize pygame and create window."""
        pygame.init()
        self.screen = pygame.display.set_mode((self.model.width, self.model.height))
        self.clock = pygame.time.Clock()

    def attach(self, surface, on_flush=None):
        """Create the renderer drawing onto `surface` and hook up its signals."""
        self.renderer = ProgressiveRenderer(self.model, SurfaceSink(surface, on_flush=on_flush))
        self.renderer.render_started.connect(self._on_started)
        self.renderer.render_progress.connect(self._on_progress)
        self.renderer.pixels_per_second.connect(self._on_rate)
        self.renderer.render_completed.connect(self._on_completed)
        self.renderer.render_aborted.connect(self._on_aborted)
        return self.renderer

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def handle_event(self, event):
        """Process one pygame event."""
        if event.type == pygame.QUIT:
            self.running = False
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            self.handle_click(*event.pos)
        elif event.type == pygame.KEYDOWN:
            self.handle_key(event.key)

    def handle_click(self, px, py):
        """Centre on the clicked pixel and zoom in."""
        model = self.model
        model.set_centre(*model.plane_point(px, py)).zoom_in_by(self.zoom_factor)
        self.renderer.start()

    def handle_key(self, key):
        """
        Handle a key press.

        Returns:
            True if the view changed and a new render was started
        """
        model = self.model
        if key == pygame.K_ESCAPE:
            self.running = False
            return False
        if key == pygame.K_s:
            self.renderer.stop()
            return False

        if key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
            model.zoom_in_by(self.zoom_factor)
        elif key in (pygame.K_MINUS, pygame.K_KP_MINUS):
            model.zoom_out_by(self.zoom_factor)
        elif key == pygame.K_j:
            model.toggle_julia()
            if model.julia:
                # Use the current view centre as the Julia constant
                model.set_julia_constant(model.centre_real, model.centre_imag)
        elif key == pygame.K_n:
            model.set_normalised(not model.normalised)
        elif key == pygame.K_f:
            model.set_formula(self._next(model.formulas, model.formula))
        elif key == pygame.K_c:
            model.set_colour_map(self._next(model.colour_maps, model.colour_map))
        elif key == pygame.K_r:
            model.reset_view()
        elif pygame.K_1 <= key <= pygame.K_9:
            presets = self.settings.get('presets', [])
            index = key - pygame.K_1
            if index >= len(presets):
                return False
            model.apply_preset(get_preset(self.settings, presets[index]['name']))
        else:
            return False

        self.renderer.start()
        return True

    @staticmethod
    def _next(items, current):
        index = next(i for i, item in enumerate(items) if item is current)
        return items[(index + 1) % len(items)]

    # ------------------------------------------------------------------
    # Renderer signals
    # ------------------------------------------------------------------

    def _on_started(self):
        self.progress = 0.0
        self.status = 'Rendering'
        self._update_caption()

    def _on_progress(self, percent):
        self.progress = percent
        self._update_caption()

    def _on_rate(self, rate):
        self.rate = rate

    def _on_completed(self):
        self.status = 'Finished'
        self._update_caption()

    def _on_aborted(self):
        self.status = 'Stopped'
        self._update_caption()

    def caption(self):
        model = self.model
        return (f"{model.formula.name.title()} - {model.get_equation()} - "
                f"{self.status} {self.progress:.0f}% ({self.rate:,.0f} px/s)")

    def _update_caption(self):
        if pygame.display.get_init():
            pygame.display.set_caption(self.caption())


def run(width=None, height=None, max_iter=None):
    """
    Run the escape-time viewer.

    Args:
        width: Window width (default from settings)
        height: Window height (default from settings)
        max_iter: Maximum iterations (default from settings)
    """
    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s %(name)s %(levelname)s %(message)s')
    app = EscapeTimeApp(width, height, max_iter)
    try:
        app.run()
    except KeyboardInterrupt:
        pygame.quit()
