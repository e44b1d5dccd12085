import json
import logging

import pytest

from escapetime.colormaps import SmoothingPolicy
from escapetime.errors import ConfigurationError
from escapetime.settings import (
    DEFAULT_SETTINGS,
    SETTINGS_ENV_VAR,
    build_colour_maps,
    build_model,
    default_settings_path,
    get_preset,
    load_settings,
)


@pytest.fixture
def settings_file(tmp_path):
    def write(content):
        path = tmp_path / 'settings.json'
        path.write_text(content if isinstance(content, str) else json.dumps(content))
        return str(path)
    return write


def test_missing_file_uses_defaults(tmp_path, caplog):
    with caplog.at_level(logging.WARNING, logger='escapetime.settings'):
        settings = load_settings(str(tmp_path / 'nope.json'))
    assert settings == DEFAULT_SETTINGS
    assert 'using defaults' in caplog.text


def test_file_overrides_defaults(settings_file):
    settings = load_settings(settings_file({'max_iterations': 1000, 'formula': 'mandelbrot cubic'}))
    assert settings['max_iterations'] == 1000
    assert settings['formula'] == 'mandelbrot cubic'
    assert settings['width'] == DEFAULT_SETTINGS['width']


def test_invalid_json_uses_defaults(settings_file, caplog):
    with caplog.at_level(logging.WARNING):
        settings = load_settings(settings_file('{"width": '))
    assert settings == DEFAULT_SETTINGS
    assert caplog.records


def test_non_object_is_ignored(settings_file):
    assert load_settings(settings_file([1, 2, 3])) == DEFAULT_SETTINGS


def test_defaults_not_mutated(settings_file):
    load_settings(settings_file({'width': 1}))
    assert DEFAULT_SETTINGS['width'] == 640


def test_environment_variable_selects_file(settings_file, monkeypatch):
    path = settings_file({'height': 123})
    monkeypatch.setenv(SETTINGS_ENV_VAR, path)
    assert default_settings_path() == path
    assert load_settings()['height'] == 123


def test_packaged_settings(monkeypatch):
    monkeypatch.delenv(SETTINGS_ENV_VAR, raising=False)
    settings = load_settings()
    names = [preset['name'] for preset in settings['presets']]
    assert 'Seahorse valley' in names
    assert [entry['name'] for entry in settings['colour_maps']] == ['rainbow', 'RGB']


def test_build_colour_maps_applies_smoothing():
    maps = build_colour_maps(dict(DEFAULT_SETTINGS, smoothing='log_compressed'))
    assert [cmap.name for cmap in maps] == ['rainbow', 'RGB']
    assert all(cmap.smoothing is SmoothingPolicy.LOG_COMPRESSED for cmap in maps)


def test_build_colour_maps_rejects_unknown_smoothing():
    with pytest.raises(ConfigurationError):
        build_colour_maps(dict(DEFAULT_SETTINGS, smoothing='bicubic'))


def test_build_model():
    settings = dict(DEFAULT_SETTINGS, formula='mandelbrot conjugate', colour_map='RGB',
                    normalised=True, max_iterations=321, escape_radius=4.0)
    model = build_model(settings, width=30, height=20)
    assert (model.width, model.height) == (30, 20)
    assert model.formula.name == 'mandelbrot conjugate'
    assert model.colour_map.name == 'RGB'
    assert model.normalised
    assert model.max_iterations == 321
    assert model.escape_radius == 4.0


def test_build_model_with_unknown_formula():
    with pytest.raises(ConfigurationError):
        build_model(dict(DEFAULT_SETTINGS, formula='burning ship'))


def test_build_models_do_not_share_palettes():
    a = build_model(dict(DEFAULT_SETTINGS))
    b = build_model(dict(DEFAULT_SETTINGS))
    assert a.colour_map is not b.colour_map


def test_get_preset():
    settings = dict(DEFAULT_SETTINGS, presets=[{'name': 'Spiral', 'scale': 0.1}])
    assert get_preset(settings, 'spiral')['scale'] == 0.1
    with pytest.raises(ConfigurationError):
        get_preset(settings, 'elephant valley')


def test_packaged_presets_apply(monkeypatch):
    monkeypatch.delenv(SETTINGS_ENV_VAR, raising=False)
    settings = load_settings()
    model = build_model(settings, 16, 12)
    for preset in settings['presets']:
        model.apply_preset(preset)
    rabbit = get_preset(settings, 'douady rabbit')
    model.apply_preset(rabbit)
    assert model.julia
    assert model.colour_map.name == 'RGB'
