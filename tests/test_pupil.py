"""Tests for optical parameters, geometry and pupil construction."""

import numpy as np
import pytest

from psflib import (
    Aberrations,
    Apodization,
    ConfigurationError,
    OpticalPathParams,
    Polarization,
    Precision,
    geometry_at,
    make_geometry,
    pupil_field,
    pupil_xyz,
)


class TestOpticalPathParams:
    """Tests for OpticalPathParams dataclass."""

    def test_defaults(self):
        """Test documented default values."""
        params = OpticalPathParams()
        assert params.wavelength == 0.5
        assert params.na == 1.2
        assert params.n == 1.33
        assert params.polarization is Polarization.CIRCULAR
        assert params.apodization is Apodization.DETECTION
        assert params.ncomp == 3

    def test_derived_quantities(self):
        """Test k0, cutoff and aperture angle."""
        params = OpticalPathParams(wavelength=0.5, na=1.0, n=1.25)
        assert np.isclose(params.k0, 2.5)
        assert np.isclose(params.k_cutoff, 2.0)
        assert np.isclose(params.sin_alpha, 0.8)
        assert np.isclose(params.cos_alpha, 0.6)

    def test_scalar_has_one_component(self):
        params = OpticalPathParams(polarization=Polarization.SCALAR)
        assert params.ncomp == 1

    def test_invalid_na(self):
        """Test that NA > n raises error."""
        with pytest.raises(ConfigurationError, match="NA"):
            OpticalPathParams(na=1.6, n=1.515)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            OpticalPathParams(wavelength=-0.5)

    def test_zero_dipole_rejected(self):
        with pytest.raises(ConfigurationError, match="zero"):
            OpticalPathParams(transition_dipole=(0, 0, 0))

    def test_replace_keeps_original(self):
        """Test that replace creates a modified copy."""
        em = OpticalPathParams()
        ex = em.replace(wavelength=0.488, apodization=Apodization.ILLUMINATION)
        assert em.wavelength == 0.5
        assert ex.wavelength == 0.488
        assert ex.na == em.na

    def test_params_are_frozen(self):
        params = OpticalPathParams()
        with pytest.raises(AttributeError):
            params.na = 1.0

    def test_precision_dtypes(self):
        assert Precision.SINGLE.complex_dtype == np.complex64
        assert Precision.DOUBLE.real_dtype == np.float64


class TestApodization:
    """Tests for aplanatic factors."""

    def test_values(self):
        theta = np.array([np.pi / 3])
        assert np.isclose(Apodization.ILLUMINATION(theta)[0], np.sqrt(0.5))
        assert np.isclose(Apodization.DETECTION(theta)[0], 1 / np.sqrt(0.5))
        assert np.isclose(Apodization.NONE(theta)[0], 1.0)


class TestAberrations:
    """Tests for Zernike aberrations."""

    def test_defocus_phase_on_axis(self):
        """OSA 4 and Noll 4 are both defocus sqrt(3) (2 rho² - 1)."""
        rho = np.array([0.0])
        phi = np.array([0.0])
        osa = Aberrations.from_dict({4: 0.5})
        noll = Aberrations.from_dict({4: 0.5}, index_style="Noll")
        expected = -0.5 * np.sqrt(3)
        assert np.isclose(osa.phase(rho, phi)[0], expected)
        assert np.isclose(noll.phase(rho, phi)[0], expected)

    def test_length_mismatch(self):
        with pytest.raises(ConfigurationError):
            Aberrations(indices=(4, 12), coefficients=(0.1,))

    def test_unknown_style(self):
        with pytest.raises(ConfigurationError, match="index style"):
            Aberrations(indices=(4,), coefficients=(0.1,), index_style="Fringe")


class TestGeometry:
    """Tests for centered frequency-space geometry."""

    @pytest.fixture
    def geom(self):
        return make_geometry((64, 48), (0.1, 0.1), OpticalPathParams())

    def test_zero_frequency_at_center(self, geom):
        assert geom.rho[32, 24] == 0.0
        assert geom.mask[32, 24]
        assert geom.shape == (64, 48)

    def test_kz_zero_outside_aperture(self, geom):
        assert np.all(geom.kz[~geom.mask] == 0.0)
        assert np.isclose(geom.kz[32, 24], OpticalPathParams().k0)

    def test_arbitrary_frequencies(self):
        params = OpticalPathParams()
        geom = geometry_at(np.array([0.0, params.k_cutoff, 3.0]), np.zeros(3), params)
        assert geom.shape == (3,)
        assert np.allclose(geom.rho[:2], [0.0, 1.0])
        assert list(geom.mask) == [True, True, False]
        assert geom.kz[2] == 0.0

    def test_pupil_matches_field_on_grid(self, geom):
        params = OpticalPathParams()
        pupil = pupil_xyz((64, 48), params, (0.1, 0.1), geom=geom)
        field, mask = pupil_field(geom.kx, geom.ky, params)
        scale = np.sqrt(64 * 48 / np.sum(np.abs(field) ** 2))
        assert np.array_equal(mask, geom.mask)
        assert np.allclose(pupil, field * scale, atol=1e-5)

    def test_invalid_spacing(self):
        with pytest.raises(ConfigurationError):
            make_geometry((32, 32), (0.1, -0.1), OpticalPathParams())


class TestPupil:
    """Tests for pupil construction."""

    @pytest.fixture
    def shape(self):
        return (128, 128)

    @pytest.fixture
    def spacing(self):
        return (0.1, 0.1)

    def test_pupil_shapes(self, shape, spacing):
        scalar = OpticalPathParams(polarization=Polarization.SCALAR)
        assert pupil_xyz(shape, scalar, spacing).shape == (1, 128, 128)
        assert pupil_xyz(shape, OpticalPathParams(), spacing).shape == (3, 128, 128)

    def test_pupil_normalization(self, shape, spacing):
        """Total pupil energy equals the number of pixels."""
        pupil = pupil_xyz(shape, OpticalPathParams(), spacing)
        energy = np.sum(np.abs(pupil.astype(np.complex128)) ** 2)
        assert np.isclose(energy, 128 * 128, rtol=1e-4)

    def test_pupil_zero_outside_aperture(self, shape, spacing):
        params = OpticalPathParams()
        geom = make_geometry(shape, spacing, params)
        pupil = pupil_xyz(shape, params, spacing)
        assert np.all(pupil[:, ~geom.mask] == 0)

    def test_pupil_dtype_follows_precision(self, shape, spacing):
        params = OpticalPathParams(precision=Precision.DOUBLE)
        assert pupil_xyz(shape, params, spacing).dtype == np.complex128
        assert pupil_xyz(shape, OpticalPathParams(), spacing).dtype == np.complex64

    def test_aberrations_change_phase_only(self, shape, spacing):
        params = OpticalPathParams(precision=Precision.DOUBLE)
        aberrated = params.replace(aberrations=Aberrations.from_dict({12: 1.0}))
        p0 = pupil_xyz(shape, params, spacing)
        p1 = pupil_xyz(shape, aberrated, spacing)
        assert np.allclose(np.abs(p0), np.abs(p1))
        assert not np.allclose(p0, p1)


class TestVectorialPupil:
    """Tests for the high-aperture polarization rotation."""

    @pytest.fixture
    def pupil(self):
        """x-polarized pupil on a 128² grid."""
        params = OpticalPathParams(
            polarization=Polarization.X, precision=Precision.DOUBLE
        )
        return pupil_xyz((128, 128), params, (0.1, 0.1))

    def test_x_component_on_axis(self, pupil):
        assert abs(pupil[0, 64, 64].imag) < 1e-8
        assert pupil[0, 64, 64].real > 1

    def test_y_component_cross_term(self, pupil):
        """Ey vanishes on the axes and appears on the diagonals."""
        assert abs(pupil[1, 64, 64]) < 1e-8
        assert abs(pupil[1, 64, 85]) < 1e-6
        assert abs(pupil[1, 85, 64]) < 1e-6
        assert abs(pupil[1, 85, 85]) > 0.5

    def test_z_component(self, pupil):
        """Ez follows cos(phi): zero along y, strong along x."""
        assert abs(pupil[2, 64, 64]) < 1e-6
        assert abs(pupil[2, 85, 64]) < 1e-6
        assert abs(pupil[2, 64, 85]) > 0.5

    def test_field_is_unit_vector_times_amplitude(self):
        """The rotation preserves the norm of the pupil-plane field."""
        params = OpticalPathParams(polarization=Polarization.CIRCULAR)
        scalar = params.replace(polarization=Polarization.SCALAR)
        ky, kx = np.meshgrid(np.linspace(-2, 2, 9), np.linspace(-2, 2, 9), indexing="ij")
        vec, mask = pupil_field(kx, ky, params)
        sca, _ = pupil_field(kx, ky, scalar)
        assert np.allclose(np.sum(np.abs(vec) ** 2, axis=0), np.abs(sca[0]) ** 2)

    def test_z_dipole_vanishes_on_axis(self):
        params = OpticalPathParams(transition_dipole=(0.0, 0.0, 1.0))
        comps, mask = pupil_field(np.array([0.0, 1.5]), np.array([0.0, 0.0]), params)
        assert np.allclose(comps[:, 0], 0.0)
        assert abs(comps[0, 1]) > 0
        assert abs(comps[2, 1]) > 0
