import os

import pytest

# Pygame tests run without a window
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

from escapetime.colormaps import ColourMap, ColourMapStrategy, default_colour_maps
from escapetime.compute import default_formulas
from escapetime.model import FractalModel


@pytest.fixture
def formulas():
    return default_formulas()


@pytest.fixture
def formulas_by_name(formulas):
    return {formula.name: formula for formula in formulas}


@pytest.fixture
def two_colour_map():
    return ColourMap('two', ColourMapStrategy.HUE_RAMP, gradations=2, saturation=1.0, value=1.0)


@pytest.fixture
def model(formulas):
    return FractalModel(formulas, default_colour_maps(), 8, 6)
