"""
Escape-time fractal renderer

Computes Mandelbrot / Julia family fractals into a pixel buffer, band by
band, so an interactive front end stays responsive while a render runs.
Iteration kernels are JIT-compiled with Numba.

Quick Start:
    from escapetime import ArraySink, ProgressiveRenderer, build_model
    model = build_model(width=320, height=240)
    renderer = ProgressiveRenderer(model, ArraySink())
    renderer.run()

Or the interactive viewer from the command line:
    python -m escapetime

Package Structure:
    - compute.py: JIT-compiled escape-time formulas
    - colormaps.py: Palette generation and iteration-count-to-colour lookup
    - model.py: View state and pixel <-> complex plane transforms
    - renderer.py: Progressive, cancellable band renderer and pixel sinks
    - display.py: Pygame surface sink
    - settings.py: settings.json loading and model construction
    - app.py: Interactive viewer
"""

from .colormaps import (
    ColourMap,
    ColourMapStrategy,
    SmoothingPolicy,
    default_colour_maps,
    list_colour_map_names,
)
from .compute import FractalFormula, IterationResult, default_formulas, warmup_jit
from .errors import ConfigurationError, EscapeTimeError, InvariantViolation
from .model import FractalModel
from .renderer import ArraySink, PixelSink, ProgressiveRenderer, RenderState
from .settings import build_model, load_settings

__version__ = "1.0.0"
__all__ = [
    "ArraySink",
    "ColourMap",
    "ColourMapStrategy",
    "ConfigurationError",
    "EscapeTimeError",
    "FractalFormula",
    "FractalModel",
    "InvariantViolation",
    "IterationResult",
    "PixelSink",
    "ProgressiveRenderer",
    "RenderState",
    "SmoothingPolicy",
    "build_model",
    "default_colour_maps",
    "default_formulas",
    "list_colour_map_names",
    "load_settings",
    "warmup_jit",
]
