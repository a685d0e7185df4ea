"""
Unit tests for lather.integration and lather.planck.
"""
import astropy.units as u
import numpy as np
import pytest

from lather.errors import ConfigError, NumericalDegenerate
from lather.grid import GeometryGrid
from lather.integration import DiskIntegrator, spot_contrasts
from lather.parameters import Spot
from lather.planck import brightness_contrast, planck_integral
from lather.rotation import RotationProjector
from lather.spots import SpotSet


def _integrator(config, spots=(), contrasts=None) -> DiskIntegrator:
    spot_set = SpotSet.from_explicit(spots)
    if contrasts is None:
        contrasts = spot_contrasts(config, spot_set)
    return DiskIntegrator(grid= GeometryGrid.build(config.grid_size),
                          limb_darkening= config.limb_darkening,
                          projector= RotationProjector.from_config(config),
                          spot_set= spot_set,
                          contrasts= contrasts)


class TestPlanck:
    def test_same_temperature(self):
        assert brightness_contrast(5778.0, 5778.0) == pytest.approx(1.0)

    def test_cool_and_hot(self):
        assert 0 < brightness_contrast(5115.0, 5778.0) < 1
        assert brightness_contrast(6028.0, 5778.0) > 1

    def test_increasing_with_temperature(self):
        values = [planck_integral(temperature) for temperature in (3000.0, 4000.0, 5000.0, 6000.0)]
        assert np.all(np.diff(values) > 0)

    def test_band_in_other_units(self):
        assert planck_integral(5000.0, 400 * u.nm, 700 * u.nm) == pytest.approx(planck_integral(5000.0))

    def test_invalid_band(self):
        with pytest.raises(ConfigError):
            planck_integral(5000.0, 7000 * u.AA, 4000 * u.AA)

    def test_invalid_temperature(self):
        with pytest.raises(ConfigError):
            planck_integral(0.0)


def test_spot_contrasts(sun_config):
    spot_set = SpotSet.from_explicit([Spot(0.0, 0.0, 0.01), Spot(0.0, 90.0, 0.01, plage= True)])
    contrasts = spot_contrasts(sun_config, spot_set)
    assert contrasts.shape == (2,)
    assert 0 < contrasts[0] < 1
    assert contrasts[1] > 1


@pytest.mark.parametrize('inclination', [90.0, 40.0, 0.0])
def test_quiet_flux_matches_analytic(make_config, inclination):
    config = make_config(grid_size= 120, inclination= inclination)
    result = _integrator(config).integrate(0.0)
    expected = config.limb_darkening.disk_integral() / 2
    assert result.quiet_flux == pytest.approx(expected, rel= 1e-2)
    assert result.flux == result.quiet_flux
    assert result.active_spots == 0


def test_quiet_star_has_no_radial_velocity(sun_config):
    integrator = _integrator(sun_config)
    for time in (0.0, sun_config.period / 2):
        assert abs(integrator.integrate(time).radial_velocity) < 1e-6
    assert abs(integrator.integrate(3.7).radial_velocity) < 0.01 * sun_config.equatorial_velocity


def test_integration_is_reentrant(sun_config):
    integrator = _integrator(sun_config, [Spot(10.0, 30.0, 0.01)])
    first = integrator.integrate(5.0)
    integrator.integrate(17.0)
    assert integrator.integrate(5.0) == first


def test_overlap_priority(sun_config):
    dark = Spot(0.0, 0.0, 0.02)
    bright = Spot(0.0, 5.0, 0.02, plage= True)
    forward = _integrator(sun_config, [dark, bright])
    backward = _integrator(sun_config, [bright, dark])
    shared = np.intersect1d(forward.membership[0], forward.membership[1])
    assert len(shared) > 0
    assert np.all(forward.brightness(0.0)[shared] == forward.contrasts[0])
    assert np.all(backward.brightness(0.0)[shared] == backward.contrasts[0])
    assert forward.contrasts[0] < 1 < backward.contrasts[0]


def test_contrast_count_checked(sun_config):
    with pytest.raises(ValueError):
        _integrator(sun_config, [Spot(0.0, 0.0, 0.01)], contrasts= np.ones(2))


def test_degenerate_flux(sun_config):
    integrator = _integrator(sun_config, [Spot(0.0, 0.0, 1.0)], contrasts= np.zeros(1))
    with pytest.raises(NumericalDegenerate) as error:
        integrator.integrate(0.0)
    assert error.value.details['flux'] == 0.0
    assert isinstance(error.value, ArithmeticError)


def test_render(sun_config):
    image = _integrator(sun_config).render(0.0, size= 50)
    assert image.shape == (50, 50)
    assert np.isnan(image[0, 0])
    assert np.isnan(image[-1, -1])
    center = image[23:27, 23:27]
    assert np.nanmean(center) == pytest.approx(1.0, abs= 0.02)
    assert np.nanmax(image) <= 1.0 + 1e-12


def test_render_shows_spot(sun_config):
    quiet = _integrator(sun_config).render(0.0, size= 50)
    spotted = _integrator(sun_config, [Spot(0.0, 0.0, 0.02)]).render(0.0, size= 50)
    assert np.nanmean(spotted[20:30, 20:30]) < np.nanmean(quiet[20:30, 20:30])
