"""
Colour map definitions for escape-time rendering.

A colour map owns a palette: a numpy array of shape (L, 4) with RGBA
values (uint8). Escape-time results are mapped cyclically onto it, either
directly (iteration count modulo L) or, in normalised mode, through a
fractional iteration count that interpolates between adjacent entries.

Two palette shapes are available:
- Hue ramp: a walk around the HSV colour wheel
- Three-way ramp: red -> green -> blue -> red, linear in each step

To add a new palette shape:
1. Define a create_xxx() function that returns the RGBA array
2. Add a ColourMapStrategy member and dispatch to it in ColourMap.generate()
"""

import enum
import logging
import math

import numpy as np

from .errors import ConfigurationError, InvariantViolation

logger = logging.getLogger(__name__)

IN_SET_COLOUR = (0, 0, 0, 255)  # Points in the set are opaque black

LOG_COMPRESSION_BASE = 1.3


class ColourMapStrategy(enum.Enum):
    HUE_RAMP = 'hue_ramp'
    THREE_WAY_RAMP = 'three_way_ramp'


class SmoothingPolicy(enum.Enum):
    """
    How a normalised iteration count is turned into a palette position.

    PLAIN uses the renormalised escape count directly. LOG_COMPRESSED
    additionally takes log base 1.3 of it, so consecutive palette entries
    cover geometrically growing iteration counts.
    """
    PLAIN = 'plain'
    LOG_COMPRESSED = 'log_compressed'


def hsv_to_rgb(h, s, v):
    """
    Convert a HSV colour (each component 0..1, hue wraps) to 8-bit RGB.
    """
    h = (h % 1.0) * 6.0
    sector = int(h) % 6
    f = h - int(h)
    p = v * (1 - s)
    q = v * (1 - s * f)
    t = v * (1 - s * (1 - f))

    if sector == 0:
        r, g, b = v, t, p
    elif sector == 1:
        r, g, b = q, v, p
    elif sector == 2:
        r, g, b = p, v, t
    elif sector == 3:
        r, g, b = p, q, v
    elif sector == 4:
        r, g, b = t, p, v
    else:
        r, g, b = v, p, q
    return int(round(r * 255)), int(round(g * 255)), int(round(b * 255))


def create_hue_ramp(gradations=10, saturation=0.6, value=0.8):
    """
    Hue ramp: one full turn of the colour wheel in `gradations` steps.

    Saturation and value are fixed, alpha is opaque.
    """
    colours = np.zeros((gradations, 4), dtype=np.uint8)
    for i in range(gradations):
        colours[i, :3] = hsv_to_rgb(i / gradations, saturation, value)
        colours[i, 3] = 255
    return colours


def create_three_way_ramp(gradations=5, max_value=128):
    """
    Three-way ramp: red -> green -> blue -> back to red.

    Each transition takes `gradations` steps; within a transition one
    channel falls from max_value to 0 while the next one rises, the third
    stays at 0. The result has 3 * gradations entries.
    """
    colours = np.zeros((3 * gradations, 4), dtype=np.uint8)
    for i in range(gradations):
        n = int(max_value * i / gradations)  # Amount into the transition
        falling = max_value - n
        colours[i] = (falling, n, 0, 255)                   # Red to green
        colours[i + gradations] = (0, falling, n, 255)      # Green to blue
        colours[i + 2 * gradations] = (n, 0, falling, 255)  # Blue to red
    return colours


def interpolate_colour(first, second, fraction):
    """
    Linearly interpolate two RGBA colours, component-wise.

    A fraction outside [0, 1] means the caller computed a bad palette
    position; it raises InvariantViolation (clamped under ``python -O``).
    """
    if not 0.0 <= fraction <= 1.0:
        if __debug__:
            raise InvariantViolation(
                f'Interpolation fraction {fraction!r} outside [0, 1]')
        fraction = min(1.0, max(0.0, fraction))
    return tuple(
        int(round(a + (b - a) * fraction)) for a, b in zip(first, second)
    )


def normalised_iteration_count(iterations, last_value, degree):
    """
    Renormalised (fractional) escape count, n + 1 - ln(ln|z|) / ln(degree).

    Falls back to the raw count when |z| <= 1, where the double
    logarithm is undefined (escape radius below 1).
    """
    if last_value <= 1.0:
        return float(iterations)
    log_zn = math.log(last_value)
    if log_zn <= 0.0:
        return float(iterations)
    return max(0.0, iterations + 1 - math.log(log_zn) / math.log(degree))


class ColourMap:
    """
    A named palette with a generation strategy.

    The palette is built on first use and cached on the instance; every
    instance allocates its own array, so colour maps never share state.

    Usage:
        cmap = ColourMap('rainbow', ColourMapStrategy.HUE_RAMP, gradations=10)
        rgba = cmap.make_colour(n, last_value, degree, max_iter, normalised)
    """

    def __init__(self, name, strategy, gradations, saturation=0.6, value=0.8,
                 max_value=128, smoothing=SmoothingPolicy.PLAIN):
        """
        Args:
            name: Display name, used for selection
            strategy: ColourMapStrategy (or its string value)
            gradations: Hue ramp length, or steps per transition for the
                three-way ramp
            saturation, value: HSV parameters of the hue ramp
            max_value: Peak channel value of the three-way ramp
            smoothing: SmoothingPolicy for normalised lookups
        """
        try:
            self.strategy = ColourMapStrategy(strategy)
            self.smoothing = SmoothingPolicy(smoothing)
        except ValueError as e:
            raise ConfigurationError(f'Colour map {name!r}: {e}') from e
        if int(gradations) < 1:
            raise ConfigurationError(
                f'Colour map {name!r}: gradations must be at least 1')
        self.name = name
        self.gradations = int(gradations)
        self.saturation = float(saturation)
        self.value = float(value)
        self.max_value = int(max_value)
        self._palette = None
        self._entries = None

    def __repr__(self):
        return f'ColourMap({self.name!r}, {self.strategy.value}, gradations={self.gradations})'

    @property
    def palette(self):
        """The RGBA palette array, generated on first access."""
        self.generate()
        return self._palette

    def generate(self):
        """Build the palette if it does not exist yet. Idempotent."""
        if self._palette is not None:
            return
        if self.strategy is ColourMapStrategy.HUE_RAMP:
            palette = create_hue_ramp(self.gradations, self.saturation, self.value)
        else:
            palette = create_three_way_ramp(self.gradations, self.max_value)
        self._palette = palette
        # Plain tuples for the per-pixel lookups
        self._entries = [tuple(int(c) for c in entry) for entry in palette]
        logger.debug("Generated %d-entry palette for colour map %r",
                     len(self._entries), self.name)

    def reset(self):
        """Discard the palette; the next lookup regenerates it."""
        self._palette = None
        self._entries = None

    def __len__(self):
        self.generate()
        return len(self._entries)

    def make_colour(self, iterations, last_value, degree, max_iter, normalised=False):
        """
        Map an escape-time result to an RGBA tuple.

        Args:
            iterations: Escape iteration count (max_iter means inside the set)
            last_value: |z| at escape, only meaningful when normalised
            degree: Power of the recurrence that produced the result
            max_iter: Iteration limit used for the result
            normalised: Interpolate using a fractional iteration count

        Returns:
            (r, g, b, a) tuple of ints
        """
        if iterations == max_iter:
            return IN_SET_COLOUR
        self.generate()
        entries = self._entries
        length = len(entries)

        if not normalised:
            return entries[int(iterations) % length]

        n = normalised_iteration_count(iterations, last_value, degree)
        if self.smoothing is SmoothingPolicy.LOG_COMPRESSED:
            n = max(0.0, math.log(n, LOG_COMPRESSION_BASE)) if n > 0 else 0.0
        index = math.floor(n)
        return interpolate_colour(
            entries[index % length],
            entries[(index + 1) % length],
            n - index
        )


def default_colour_maps(smoothing=SmoothingPolicy.PLAIN):
    """Build fresh instances of the standard colour maps."""
    return (
        ColourMap('rainbow', ColourMapStrategy.HUE_RAMP, gradations=10,
                  saturation=0.6, value=0.8, smoothing=smoothing),
        ColourMap('RGB', ColourMapStrategy.THREE_WAY_RAMP, gradations=5,
                  max_value=128, smoothing=smoothing),
    )


def colour_map_from_settings(entry, smoothing=SmoothingPolicy.PLAIN):
    """
    Build a ColourMap from a settings.json entry.

    Args:
        entry: dict with 'name', 'strategy', 'gradations' and optionally
            'saturation', 'value', 'max_value'
        smoothing: Default SmoothingPolicy, overridden by entry['smoothing']

    Raises:
        ConfigurationError if a required key is missing or invalid
    """
    try:
        name = entry['name']
        strategy = entry['strategy']
        gradations = entry['gradations']
    except (KeyError, TypeError) as e:
        raise ConfigurationError(f'Invalid colour map entry {entry!r}') from e
    return ColourMap(
        name, strategy, gradations,
        saturation=entry.get('saturation', 0.6),
        value=entry.get('value', 0.8),
        max_value=entry.get('max_value', 128),
        smoothing=entry.get('smoothing', smoothing),
    )


def list_colour_map_names(colour_maps):
    """Get the names of the given colour maps, in order."""
    return [cmap.name for cmap in colour_maps]
