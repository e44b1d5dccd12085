"""
View state for escape-time rendering.

FractalModel holds everything that determines the rendered image:
centre, scale, canvas size, iteration limit, escape radius, Julia mode
and constant, normalisation, and the selected formula and colour map. It
also converts between pixel and complex-plane coordinates.

Setters only assign (with type coercion) and return the model so calls
can be chained. None of them triggers a render; the caller asks the
renderer for one.
"""

import logging

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class FractalModel:
    """
    View and parameter state plus pixel <-> plane transforms.

    Usage:
        model = FractalModel(default_formulas(), default_colour_maps(), 640, 480)
        model.set_centre(-0.75, 0.1).zoom_in_by(2)
        x = model.pixel_column_to_real(10)

    Attributes:
        width, height: Canvas size in pixels
        centre_real, centre_imag: Point of the plane at the canvas centre
        scale: Plane units per pixel (the zoom factor is 1 / scale)
        max_iterations: Iteration limit per point
        escape_radius: Bailout radius
        julia: Julia mode flag
        julia_real, julia_imag: Julia constant
        normalised: Smooth (fractional) colouring flag
        formula: Selected FractalFormula
        colour_map: Selected ColourMap
    """

    DEFAULT_MAX_ITERATIONS = 100
    DEFAULT_ESCAPE_RADIUS = 2.0
    DEFAULT_VIEW_SPAN = 5.0  # Plane units across the shorter canvas side

    def __init__(self, formulas, colour_maps, width, height,
                 max_iterations=None, escape_radius=None):
        """
        Args:
            formulas: Sequence of FractalFormula; the first is selected
            colour_maps: Sequence of ColourMap; the first is selected
            width, height: Canvas size in pixels
            max_iterations: Iteration limit (default 100)
            escape_radius: Bailout radius (default 2.0)
        """
        self._formulas = tuple(formulas)
        self._colour_maps = tuple(colour_maps)
        if not self._formulas:
            raise ConfigurationError('At least one formula is required')
        if not self._colour_maps:
            raise ConfigurationError('At least one colour map is required')

        self.width = int(width)
        self.height = int(height)
        self.formula = self._formulas[0]
        self.colour_map = self._colour_maps[0]
        if max_iterations is None:
            max_iterations = self.DEFAULT_MAX_ITERATIONS
        if escape_radius is None:
            escape_radius = self.DEFAULT_ESCAPE_RADIUS
        self.max_iterations = int(max_iterations)
        self.escape_radius = float(escape_radius)
        self.julia = False
        self.julia_real = 0.0
        self.julia_imag = 0.0
        self.normalised = False
        self.reset_view()

    # ------------------------------------------------------------------
    # Registered formulas and colour maps
    # ------------------------------------------------------------------

    @property
    def formulas(self):
        return self._formulas

    @property
    def colour_maps(self):
        return self._colour_maps

    def formula_names(self):
        return [formula.name for formula in self._formulas]

    def colour_map_names(self):
        return [cmap.name for cmap in self._colour_maps]

    def find_formula(self, name):
        """Look up a formula by name (case-insensitive)."""
        for formula in self._formulas:
            if formula.name.lower() == str(name).lower():
                return formula
        raise ConfigurationError(
            f'Unknown formula {name!r}. Available: {", ".join(self.formula_names())}')

    def find_colour_map(self, name):
        """Look up a colour map by name (case-insensitive)."""
        for cmap in self._colour_maps:
            if cmap.name.lower() == str(name).lower():
                return cmap
        raise ConfigurationError(
            f'Unknown colour map {name!r}. Available: {", ".join(self.colour_map_names())}')

    # ------------------------------------------------------------------
    # Coordinate transforms
    # ------------------------------------------------------------------

    @property
    def zoom(self):
        """Pixels per plane unit."""
        return 1.0 / self.scale

    def pixel_column_to_real(self, column):
        return (column + 0.5 - self.width / 2) * self.scale + self.centre_real

    def pixel_row_to_imag(self, row):
        # Pixel rows grow downwards, the imaginary axis upwards
        return -(row + 0.5 - self.height / 2) * self.scale + self.centre_imag

    def real_to_pixel_column(self, real):
        return (real - self.centre_real) / self.scale + self.width / 2 - 0.5

    def imag_to_pixel_row(self, imag):
        return -(imag - self.centre_imag) / self.scale + self.height / 2 - 0.5

    def plane_point(self, column, row):
        """Complex-plane (real, imag) of a pixel centre."""
        return self.pixel_column_to_real(column), self.pixel_row_to_imag(row)

    def iteration_constant(self, x, y):
        """The additive constant c for the orbit starting at (x, y)."""
        if self.julia:
            return self.julia_real, self.julia_imag
        return x, y

    def get_equation(self):
        return self.formula.get_equation(self.julia)

    # ------------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------------

    def reset_view(self):
        """Centre on the origin with the whole set in view."""
        self.centre_real = 0.0
        self.centre_imag = 0.0
        self.scale = self.DEFAULT_VIEW_SPAN / max(1, min(self.width, self.height))
        return self

    def set_size(self, width, height):
        self.width = int(width)
        self.height = int(height)
        return self

    def set_centre(self, real, imag):
        self.centre_real = float(real)
        self.centre_imag = float(imag)
        return self

    def set_scale(self, scale):
        self.scale = float(scale)
        return self

    def set_zoom(self, zoom):
        self.scale = 1.0 / float(zoom)
        return self

    def zoom_by(self, factor):
        """Multiply the scale by `factor` (> 1 zooms out)."""
        self.scale *= float(factor)
        return self

    def zoom_in_by(self, factor):
        return self.zoom_by(1.0 / float(factor))

    def zoom_out_by(self, factor):
        return self.zoom_by(factor)

    def set_max_iterations(self, max_iterations):
        self.max_iterations = int(max_iterations)
        return self

    def set_escape_radius(self, radius):
        self.escape_radius = float(radius)
        return self

    def set_julia(self, julia):
        self.julia = bool(julia)
        return self

    def toggle_julia(self):
        self.julia = not self.julia
        return self

    def set_julia_constant(self, real, imag):
        self.julia_real = float(real)
        self.julia_imag = float(imag)
        return self

    def set_normalised(self, normalised):
        self.normalised = bool(normalised)
        return self

    def set_formula(self, formula):
        """
        Select a formula by name or instance.

        Raises:
            ConfigurationError if it is not one of this model's formulas
        """
        if isinstance(formula, str):
            formula = self.find_formula(formula)
        elif formula not in self._formulas:
            raise ConfigurationError(f'Formula {formula!r} is not registered')
        self.formula = formula
        logger.debug("Formula set to %r", formula.name)
        return self

    def set_colour_map(self, colour_map):
        """
        Select a colour map by name or instance.

        Raises:
            ConfigurationError if it is not one of this model's colour maps
        """
        if isinstance(colour_map, str):
            colour_map = self.find_colour_map(colour_map)
        elif not any(colour_map is cmap for cmap in self._colour_maps):
            raise ConfigurationError(f'Colour map {colour_map!r} is not registered')
        self.colour_map = colour_map
        logger.debug("Colour map set to %r", colour_map.name)
        return self

    def apply_preset(self, preset):
        """
        Apply a named view from settings.

        Every referenced formula and colour map is resolved before anything
        is assigned, so an invalid preset leaves the model unchanged.

        Args:
            preset: dict with any of 'formula', 'colour_map', 'julia',
                'julia_constant', 'normalised', 'centre', 'max_iterations',
                'scale', 'escape_radius'
        """
        formula = self.find_formula(preset['formula']) if 'formula' in preset else self.formula
        cmap = self.find_colour_map(preset['colour_map']) if 'colour_map' in preset else self.colour_map

        self.set_formula(formula).set_colour_map(cmap)
        if 'julia' in preset:
            self.set_julia(preset['julia'])
        if 'julia_constant' in preset:
            self.set_julia_constant(*preset['julia_constant'])
        if 'normalised' in preset:
            self.set_normalised(preset['normalised'])
        if 'centre' in preset:
            self.set_centre(*preset['centre'])
        if 'max_iterations' in preset:
            self.set_max_iterations(preset['max_iterations'])
        if 'escape_radius' in preset:
            self.set_escape_radius(preset['escape_radius'])
        if 'scale' in preset:
            self.set_scale(preset['scale'])
        logger.info("Applied preset %r", preset.get('name', '<unnamed>'))
        return self

    def describe(self):
        """Snapshot of the view as a plain dict."""
        return {
            'formula': self.formula.name,
            'colour_map': self.colour_map.name,
            'centre': (self.centre_real, self.centre_imag),
            'scale': self.scale,
            'size': (self.width, self.height),
            'max_iterations': self.max_iterations,
            'escape_radius': self.escape_radius,
            'julia': self.julia,
            'julia_constant': (self.julia_real, self.julia_imag),
            'normalised': self.normalised,
        }
