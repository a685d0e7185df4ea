"""
Tests of configuration files.
"""
import copy
from pathlib import Path

import pytest

from lather.errors import ConfigError
from lather.load.configuration import load_config, parse_config
from lather.parameters import Lifetime
from lather.placement import CoveragePolicy

EXAMPLE = Path(__file__).parents[1] / 'examples' / 'sun.toml'

DOCUMENT = {
    'instrument_resolution': 100_000,
    'star': {
        'grid_size': 60,
        'radius': 1.0,
        'period': 25.05,
        'inclination': 90.0,
        'temperature': 5778,
        'spot_temp_diff': 663,
        'limb_linear': 0.29,
        'limb_quadratic': 0.34,
        'target_fill_factor': 0.01,
    },
    'spots': [
        {'latitude': 30.0, 'longitude': 180.0, 'fill_factor': 0.01},
        {'latitude': 0.0, 'longitude': 0.0, 'fill_factor': 0.01, 'lifetime': {'start': 20.0, 'end': 50.0}},
    ],
}


def _document(**sections) -> dict:
    document = copy.deepcopy(DOCUMENT)
    document.update(sections)
    return document


class TestLoadConfig:
    def test_example_file(self):
        configuration = load_config(EXAMPLE)
        assert configuration.star.grid_size == 1000
        assert configuration.star.temperature == 5778.0
        assert configuration.star.instrument_resolution == 100_000
        assert len(configuration.spots) == 3
        assert configuration.spots[2].lifetime == Lifetime(20.0, 50.0)
        assert configuration.spots[0].identifier == 'spot-0'
        assert configuration.seed == 42
        assert configuration.placement.coverage_policy == CoveragePolicy.START
        assert configuration.placement.size_distribution.kind == 'lognormal'

    def test_defaults(self):
        configuration = parse_config(_document())
        assert configuration.seed is None
        assert configuration.star.plage_temp_diff == 250.0
        assert configuration.placement.latitude_range == (-90.0, 90.0)
        assert not configuration.spots[0].plage

    def test_placement_section(self):
        configuration = parse_config(_document(placement= {
            'seed': 5,
            'coverage_policy': 'mean',
            'latitude_min': -40.0,
            'latitude_max': 40.0,
            'avoid_overlap': True,
            'random_lifetime': 12.0,
            'size_distribution': {'kind': 'fixed', 'value': 0.002},
        }))
        assert configuration.seed == 5
        assert configuration.placement.coverage_policy == CoveragePolicy.MEAN
        assert configuration.placement.latitude_range == (-40.0, 40.0)
        assert configuration.placement.avoid_overlap
        assert configuration.placement.random_lifetime == 12.0
        assert configuration.placement.size_distribution.value == 0.002

    def test_all_errors_reported(self):
        document = _document(planet= {'radius': 1.0})
        del document['star']['radius']
        document['spots'][0]['size'] = 3.0
        document['spots'][1]['fill_factor'] = 2.0
        with pytest.raises(ConfigError) as error:
            parse_config(document)
        errors = error.value.details['errors']
        assert 'Missing field radius of section star' in errors
        assert 'Unknown field size of section spots[0]' in errors
        assert 'Unknown section planet' in errors
        assert any(message.startswith('Section spots[1]') for message in errors)

    def test_invalid_star_value(self):
        document = _document()
        document['star']['inclination'] = 200.0
        with pytest.raises(ConfigError) as error:
            parse_config(document)
        assert error.value.details['errors'][0].startswith('Section star')

    def test_missing_resolution(self):
        document = _document()
        del document['instrument_resolution']
        with pytest.raises(ConfigError):
            parse_config(document)

    def test_incomplete_lifetime(self):
        document = _document()
        document['spots'][1]['lifetime'] = {'start': 20.0}
        with pytest.raises(ConfigError):
            parse_config(document)

    def test_invalid_placement(self):
        with pytest.raises(ConfigError):
            parse_config(_document(placement= {'coverage_policy': 'median'}))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / 'missing.toml')

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / 'broken.toml'
        path.write_text('[star\ngrid_size = 10\n')
        with pytest.raises(ConfigError):
            load_config(path)
