from dataclasses import replace

import pytest

from lather.parameters import Lifetime, Spot, StarConfig


@pytest.fixture
def sun_config() -> StarConfig:
    """Solar parameters on a coarse grid, without random spots."""
    return StarConfig(grid_size= 90,
                      radius= 1.0,
                      period= 25.05,
                      inclination= 90.0,
                      temperature= 5778.0,
                      spot_temp_diff= 663.0,
                      limb_linear= 0.29,
                      limb_quadratic= 0.34,
                      target_fill_factor= 0.0,
                      instrument_resolution= 100_000.0)


@pytest.fixture
def make_config(sun_config):
    """Factory of solar configurations with overridden fields."""
    def _make(**overrides) -> StarConfig:
        return replace(sun_config, **overrides)
    return _make


@pytest.fixture
def sun_spots() -> list[Spot]:
    """The three spots of the example solar configuration."""
    return [
        Spot(latitude= 30.0, longitude= 180.0, fill_factor= 0.01),
        Spot(latitude= -30.0, longitude= 180.0, fill_factor= 0.01),
        Spot(latitude= 0.0, longitude= 0.0, fill_factor= 0.01, lifetime= Lifetime(20.0, 50.0)),
    ]
