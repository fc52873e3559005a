"""Tests for the amplitude spread function methods."""

import numpy as np
import pytest

from psflib import (
    Aberrations,
    Apodization,
    ConfigurationError,
    Method,
    OpticalPathParams,
    PhysicalConstraintWarning,
    Polarization,
    Precision,
    apsf,
    apsf_propagate,
    apsf_richards_wolf,
    apsf_sinc_r,
    select_region,
)

SHAPE = (64, 128, 128)
SAMPLING = (0.15, 0.1, 0.1)
CENTER = (16, 32, 32)


def center_error(a, b):
    """Relative norm difference of the central regions of two fields."""
    a = select_region(a, CENTER)
    b = select_region(b, CENTER)
    return np.linalg.norm(a - b) / max(np.linalg.norm(a), np.linalg.norm(b))


@pytest.fixture(
    scope="module",
    params=[
        (Polarization.SCALAR, Apodization.ILLUMINATION),
        (Polarization.X, Apodization.DETECTION),
    ],
    ids=["scalar-illumination", "x-detection"],
)
def params(request):
    polarization, apodization = request.param
    return OpticalPathParams(polarization=polarization, apodization=apodization)


@pytest.fixture(scope="module")
def reference(params):
    """Iterative propagation, the default method."""
    return apsf(SHAPE, params, sampling=SAMPLING, method=Method.PROPAGATE_ITERATIVE)


class TestMethodAgreement:
    """All methods describe the same focal field in the center of the grid."""

    def test_shape_and_dtype(self, params, reference):
        assert reference.shape == (params.ncomp,) + SHAPE
        assert reference.dtype == np.complex64

    def test_focal_plane_energy(self, reference):
        energy = np.sum(np.abs(reference[:, SHAPE[0] // 2]) ** 2)
        assert np.isclose(energy, 1.0, rtol=1e-4)

    def test_direct_propagation(self, params, reference):
        amp = apsf(SHAPE, params, sampling=SAMPLING, method=Method.PROPAGATE)
        assert center_error(amp, reference) < 0.05

    def test_sinc_r(self, params, reference):
        amp = apsf(SHAPE, params, sampling=SAMPLING, method=Method.SINC_R)
        assert center_error(amp, reference) < 0.15

    def test_shell(self, params, reference):
        amp = apsf(SHAPE, params, sampling=SAMPLING, method=Method.SHELL)
        assert center_error(amp, reference) < 0.1

    def test_richards_wolf(self, params, reference):
        amp = apsf(SHAPE, params, sampling=SAMPLING, method=Method.RICHARDS_WOLF)
        assert center_error(amp, reference) < 0.1


class TestLargeGrid:
    """Direct propagation on a larger grid has no wrap-around in the center."""

    def test_cropped_direct_matches_iterative(self):
        params = OpticalPathParams(polarization=Polarization.SCALAR)
        reference = apsf(SHAPE, params, sampling=SAMPLING)
        big = apsf((64, 256, 256), params, sampling=SAMPLING, method="propagate")
        assert center_error(select_region(big, SHAPE), reference) < 0.1


class TestCenterKz:
    """Tests for removal of the axial carrier."""

    def test_intensity_unchanged(self):
        params = OpticalPathParams(precision=Precision.DOUBLE)
        shape = (16, 32, 32)
        sampling = (0.2, 0.1, 0.1)
        plain = apsf_propagate(shape, params, sampling)
        centered = apsf_propagate(shape, params, sampling, center_kz=True)
        assert np.allclose(np.abs(plain), np.abs(centered), atol=1e-10)
        assert not np.allclose(plain, centered)

    def test_sinc_r_intensity_unchanged(self):
        params = OpticalPathParams(polarization=Polarization.SCALAR)
        shape = (16, 32, 32)
        sampling = (0.15, 0.1, 0.1)
        plain = apsf_sinc_r(shape, params, sampling)
        centered = apsf_sinc_r(shape, params, sampling, center_kz=True)
        assert np.allclose(np.abs(plain), np.abs(centered), atol=1e-5)


class TestRichardsWolf:
    """Tests for the quadrature method."""

    def test_scalar_radially_symmetric(self):
        params = OpticalPathParams(
            polarization=Polarization.SCALAR, precision=Precision.DOUBLE
        )
        amp = apsf_richards_wolf((8, 32, 32), params, (0.2, 0.1, 0.1))
        focal = amp[0, 4]
        assert np.allclose(focal[16, 16:], focal[16:, 16], atol=1e-10)
        assert np.allclose(focal[16, 16:], focal[16, 16:0:-1], atol=1e-10)

    def test_aberrated_field(self):
        params = OpticalPathParams(precision=Precision.DOUBLE)
        coma = params.replace(aberrations=Aberrations.from_dict({7: 0.8}))
        shape = (8, 32, 32)
        sampling = (0.2, 0.1, 0.1)
        amp = apsf_richards_wolf(shape, coma, sampling)
        assert amp.shape == (3,) + shape
        assert np.all(np.isfinite(amp))
        assert np.isclose(np.sum(np.abs(amp[:, 4]) ** 2), 1.0)
        assert not np.allclose(amp, apsf_richards_wolf(shape, params, sampling))


class TestWarningsAndErrors:
    """Tests for sampling warnings and method selection."""

    def test_undersampled_amplitude_warns(self):
        with pytest.warns(PhysicalConstraintWarning, match="undersampled"):
            apsf((4, 8, 8), OpticalPathParams(), sampling=(1.0, 0.5, 0.5))

    def test_sinc_r_coarse_axial_sampling_warns(self):
        params = OpticalPathParams(polarization=Polarization.SCALAR)
        with pytest.warns(PhysicalConstraintWarning, match="spherical shell"):
            apsf_sinc_r((8, 16, 16), params, (0.3, 0.1, 0.1))

    def test_unknown_method(self):
        with pytest.raises(ConfigurationError, match="method"):
            apsf((4, 8, 8), OpticalPathParams(), method="bogus")

    def test_invalid_shape(self):
        with pytest.raises(ConfigurationError):
            apsf((8, 8), OpticalPathParams())

    def test_method_from_params(self):
        params = OpticalPathParams(method=Method.PROPAGATE, precision=Precision.DOUBLE)
        shape = (8, 32, 32)
        sampling = (0.2, 0.1, 0.1)
        assert np.allclose(apsf(shape, params, sampling), apsf_propagate(shape, params, sampling))

    def test_deterministic(self):
        params = OpticalPathParams()
        first = apsf((8, 32, 32), params, sampling=(0.2, 0.1, 0.1))
        second = apsf((8, 32, 32), params, sampling=(0.2, 0.1, 0.1))
        assert np.array_equal(first, second)
