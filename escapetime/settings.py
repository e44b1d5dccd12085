"""
Settings for the escape-time renderer.

Defaults live in DEFAULT_SETTINGS; settings.json next to this module (or
the file named by the ESCAPETIME_SETTINGS environment variable) overrides
them key by key. A missing or unreadable file is not an error: the
defaults are used and a warning is logged.
"""

import json
import logging
import os

from .colormaps import SmoothingPolicy, colour_map_from_settings
from .compute import default_formulas
from .errors import ConfigurationError
from .model import FractalModel

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = 'ESCAPETIME_SETTINGS'

DEFAULT_SETTINGS = {
    'width': 640,
    'height': 480,
    'max_iterations': 100,
    'escape_radius': 2.0,
    'normalised': False,
    'smoothing': 'plain',
    'formula': 'mandelbrot',
    'colour_map': 'rainbow',
    'zoom_factor': 2,
    'colour_maps': [
        {'name': 'rainbow', 'strategy': 'hue_ramp', 'gradations': 10,
         'saturation': 0.6, 'value': 0.8},
        {'name': 'RGB', 'strategy': 'three_way_ramp', 'gradations': 5,
         'max_value': 128},
    ],
    'presets': [],
}


def default_settings_path():
    return os.environ.get(SETTINGS_ENV_VAR) or os.path.join(
        os.path.dirname(__file__), 'settings.json')


def load_settings(path=None):
    """
    Load settings from a JSON file, merged over DEFAULT_SETTINGS.

    Args:
        path: JSON file to read (default: default_settings_path())

    Returns:
        dict of settings
    """
    settings = dict(DEFAULT_SETTINGS)
    settings_path = path or default_settings_path()
    try:
        with open(settings_path, 'r') as f:
            loaded = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.warning("Could not load %s, using defaults: %s", settings_path, e)
        return settings
    if not isinstance(loaded, dict):
        logger.warning("Ignoring %s: top level is not an object", settings_path)
        return settings
    settings.update(loaded)
    return settings


def build_colour_maps(settings):
    """Create fresh ColourMap instances for the settings' colour map entries."""
    try:
        smoothing = SmoothingPolicy(settings.get('smoothing', 'plain'))
    except ValueError as e:
        raise ConfigurationError(f'Invalid smoothing policy: {e}') from e
    return tuple(colour_map_from_settings(entry, smoothing)
                 for entry in settings['colour_maps'])


def build_model(settings=None, width=None, height=None):
    """
    Create a FractalModel configured from settings.

    Args:
        settings: Settings dict (default: load_settings())
        width, height: Canvas size overriding the settings

    Raises:
        ConfigurationError if the configured formula or colour map is unknown
    """
    if settings is None:
        settings = load_settings()
    model = FractalModel(
        default_formulas(),
        build_colour_maps(settings),
        width or settings['width'],
        height or settings['height'],
        max_iterations=settings['max_iterations'],
        escape_radius=settings['escape_radius'],
    )
    model.set_formula(settings['formula'])
    model.set_colour_map(settings['colour_map'])
    model.set_normalised(settings['normalised'])
    return model


def get_preset(settings, name):
    """
    Find a preset by name (case-insensitive).

    Raises:
        ConfigurationError if there is no such preset
    """
    for preset in settings.get('presets', []):
        if str(preset.get('name', '')).lower() == str(name).lower():
            return preset
    raise ConfigurationError(f'Unknown preset {name!r}')
