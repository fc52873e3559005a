"""Tests for pinholes and confocal PSF computation."""

import warnings

import numpy as np
import pytest

from psflib import (
    Apodization,
    ConfigurationError,
    OpticalPathParams,
    PhysicalConstraintWarning,
    PinholeShape,
    PinholeSpec,
    PSFOptions,
    UnsupportedRequestError,
    box_pinhole_ft,
    confocal_int,
    disc_pinhole_ft,
    pinhole_au_to_pix,
    psf_confocal,
    psf_widefield,
    select_region,
)


def rel_error(a, b):
    return np.linalg.norm(a - b) / max(np.linalg.norm(a), np.linalg.norm(b))


@pytest.fixture(scope="module")
def emission():
    return OpticalPathParams(wavelength=0.5, na=1.3, n=1.52)


@pytest.fixture(scope="module")
def excitation(emission):
    return emission.replace(wavelength=0.488, apodization=Apodization.ILLUMINATION)


@pytest.fixture(scope="module")
def grid():
    """Shape and sampling of the confocal comparisons."""
    return (32, 128, 128), (0.12, 0.04, 0.04)


@pytest.fixture(scope="module")
def widefield(emission, excitation, grid):
    """Excitation and emission widefield PSFs without resampling."""
    shape, sampling = grid
    options = PSFOptions(sampling=sampling, use_resampling=False)
    return (
        psf_widefield(shape, excitation, options),
        psf_widefield(shape, emission, options),
    )


@pytest.fixture(scope="module")
def widefield_resampled(emission, excitation, grid):
    """Excitation and emission widefield PSFs with the default options."""
    shape, sampling = grid
    options = PSFOptions(sampling=sampling)
    return (
        psf_widefield(shape, excitation, options),
        psf_widefield(shape, emission, options),
    )


class TestPinholeTransforms:
    """Tests for closed-form pinhole transfer functions."""

    def test_disc_dc_is_area(self):
        ft = disc_pinhole_ft((16, 16), (3.0, 5.0))
        assert ft.shape == (16, 9)
        assert np.isclose(ft[0, 0], np.pi * 15 / 4)

    def test_box_dc_is_area(self):
        ft = box_pinhole_ft((16, 16), (3.0, 5.0))
        assert np.isclose(ft[0, 0], 15.0)

    def test_disc_is_real_and_symmetric(self):
        ft = disc_pinhole_ft((16, 16), (4.0, 4.0))
        assert np.isrealobj(ft)
        assert np.allclose(ft[1:8, 3], ft[-1:-8:-1, 3])


class TestPinholeConversion:
    """Tests for Airy unit to pixel conversion."""

    def test_conversion(self):
        params = OpticalPathParams()
        au = 1.22 * 0.5 / 1.2
        diameter = pinhole_au_to_pix((32, 64, 64), params, (0.1, 0.1, 0.05), 1.0)
        assert np.allclose(diameter, (au / 0.1, au / 0.05))

    def test_open_pinhole(self):
        assert pinhole_au_to_pix((32, 64, 64), OpticalPathParams(), (0.1,) * 3, None) is None

    def test_too_large_warns_and_opens(self):
        with pytest.warns(PhysicalConstraintWarning, match="fully open"):
            result = pinhole_au_to_pix(
                (32, 64, 64), OpticalPathParams(), (0.1, 0.1, 0.1), 100
            )
        assert result is None

    def test_non_positive(self):
        with pytest.raises(ConfigurationError):
            pinhole_au_to_pix((32, 64, 64), OpticalPathParams(), (0.1,) * 3, 0.0)


class TestConfocalInt:
    """Tests for combining intensities through a pinhole."""

    @pytest.fixture
    def psf_em(self):
        rng = np.random.default_rng(1)
        return rng.random((2, 16, 16))

    def test_open_pinhole_is_excitation(self, psf_em):
        psf_ex = np.full((2, 16, 16), 0.5)
        assert confocal_int(psf_ex, psf_em) is psf_ex

    def test_two_photon_squares_excitation(self, psf_em):
        psf_ex = np.full((2, 16, 16), 0.5)
        assert np.allclose(confocal_int(psf_ex, psf_em, two_photon=True), 0.25)

    def test_several_positions_give_list(self, psf_em):
        psf_ex = np.ones((2, 16, 16))
        spec = PinholeSpec(positions=((0.0, 0.0), (1.0, 1.0)))
        result = confocal_int(psf_ex, psf_em, spec)
        assert isinstance(result, list)
        assert len(result) == 2

    def test_integer_shift_is_roll(self, psf_em):
        psf_ex = np.ones((2, 16, 16))
        spec = PinholeSpec(
            diameter=(3.0, 3.0),
            shape=PinholeShape.BOX,
            positions=((0.0, 0.0), (2.0, -3.0)),
        )
        centered, shifted = confocal_int(psf_ex, psf_em, spec)
        assert np.allclose(shifted, np.roll(centered, (2, -3), axis=(1, 2)))

    def test_uniform_emission_scales_with_area(self):
        psf_ex = np.ones((2, 16, 16))
        psf_em = np.ones((2, 16, 16))
        spec = PinholeSpec(diameter=(3.0, 3.0), shape=PinholeShape.BOX)
        assert np.allclose(confocal_int(psf_ex, psf_em, spec), 9.0)


class TestConfocalPSF:
    """Tests for the confocal PSF against its limiting cases."""

    def test_small_pinhole_is_product(self, emission, excitation, grid, widefield):
        shape, sampling = grid
        options = PSFOptions(
            excitation=excitation, pinhole=0.001, sampling=sampling, use_resampling=False
        )
        pc = psf_confocal(shape, emission, options)
        product = widefield[0] * widefield[1]
        assert pc.shape == shape
        assert rel_error(pc / pc.sum(), product / product.sum()) < 0.05
        assert rel_error(pc / pc.max(), product / product.max()) < 0.01

    def test_large_pinhole_is_excitation(self, emission, excitation, grid, widefield):
        shape, sampling = grid
        options = PSFOptions(
            excitation=excitation, pinhole=5.0, sampling=sampling, use_resampling=False
        )
        pc = select_region(psf_confocal(shape, emission, options), (8, 32, 32))
        psf_ex = select_region(widefield[0], (8, 32, 32))
        assert rel_error(pc / pc.max(), psf_ex / psf_ex.max()) < 0.15

    def test_small_pinhole_is_product_resampled(
        self, emission, excitation, grid, widefield_resampled
    ):
        shape, sampling = grid
        options = PSFOptions(excitation=excitation, pinhole=0.001, sampling=sampling)
        pc = psf_confocal(shape, emission, options)
        product = widefield_resampled[0] * widefield_resampled[1]
        assert rel_error(pc / pc.sum(), product / product.sum()) < 0.05
        assert rel_error(pc / pc.max(), product / product.max()) < 0.01

    def test_large_pinhole_is_excitation_resampled(
        self, emission, excitation, grid, widefield_resampled
    ):
        shape, sampling = grid
        options = PSFOptions(excitation=excitation, pinhole=5.0, sampling=sampling)
        pc = select_region(psf_confocal(shape, emission, options), (8, 32, 32))
        psf_ex = select_region(widefield_resampled[0], (8, 32, 32))
        assert rel_error(pc / pc.max(), psf_ex / psf_ex.max()) < 0.15

    def test_no_sampling_warning_at_test_grid(self, emission, excitation, grid):
        shape, sampling = grid
        options = PSFOptions(
            excitation=excitation, pinhole=1.0, sampling=sampling, use_resampling=False
        )
        with warnings.catch_warnings():
            warnings.simplefilter("error", PhysicalConstraintWarning)
            psf_confocal((8, 64, 64), emission, options)


class TestConfocalErrors:
    """Tests for missing and unsupported confocal parameters."""

    def test_missing_excitation(self):
        with pytest.raises(ConfigurationError, match="excitation"):
            psf_confocal((8, 32, 32), OpticalPathParams(), PSFOptions(pinhole=1.0))

    def test_missing_pinhole(self, excitation):
        with pytest.raises(ConfigurationError, match="pinhole"):
            psf_confocal(
                (8, 32, 32), OpticalPathParams(), PSFOptions(excitation=excitation)
            )

    def test_no_amplitude(self, excitation):
        options = PSFOptions(excitation=excitation, pinhole=1.0, return_amplitude=True)
        with pytest.raises(UnsupportedRequestError):
            psf_confocal((8, 32, 32), OpticalPathParams(), options)

    def test_default_options_rejected(self):
        with pytest.raises(ConfigurationError):
            psf_confocal((8, 32, 32), OpticalPathParams())
