"""Vectorial pupil functions."""

import logging
from typing import Tuple

import numpy as np

from .params import (
    Geometry,
    OpticalPathParams,
    Polarization,
    geometry_at,
    make_geometry,
)

__all__ = ["pupil_field", "pupil_xyz", "compute_vectorial_factors"]

_log = logging.getLogger(__name__)


def compute_vectorial_factors(
    sin_theta: np.ndarray,
    cos_theta: np.ndarray,
    phi: np.ndarray,
    polarization: Polarization,
) -> np.ndarray:
    """Focal field components of a polarized pupil at high aperture.

    Each pupil ray is rotated from the pupil plane onto the focal sphere,
    which mixes the lateral components and creates an axial one:

        Ex = (cosθ cos²φ + sin²φ) ex + (cosθ - 1) sinφ cosφ ey
        Ey = (cosθ - 1) sinφ cosφ ex + (cosθ sin²φ + cos²φ) ey
        Ez = -sinθ cosφ ex - sinθ sinφ ey

    Args:
        sin_theta: sin(θ) of each ray.
        cos_theta: cos(θ) of each ray.
        phi: Azimuthal angle of each ray.
        polarization: Any non-scalar polarization.

    Returns:
        Complex array of shape (3, ...) with the (x, y, z) factors.

    Reference:
        Richards, B. & Wolf, E. (1959), Proc. R. Soc. A 253: 358-379
    """
    ex, ey = polarization.jones
    cos_phi = np.cos(phi)
    sin_phi = np.sin(phi)
    cross = (cos_theta - 1.0) * sin_phi * cos_phi

    fx = (cos_theta * cos_phi**2 + sin_phi**2) * ex + cross * ey
    fy = cross * ex + (cos_theta * sin_phi**2 + cos_phi**2) * ey
    fz = -sin_theta * cos_phi * ex - sin_theta * sin_phi * ey

    return np.stack([fx, fy, fz]).astype(np.complex128)


def _dipole_factors(
    sin_theta: np.ndarray,
    cos_theta: np.ndarray,
    phi: np.ndarray,
    dipole: Tuple[float, float, float],
) -> np.ndarray:
    """Transverse projection of a fixed dipole onto each ray direction."""
    mu = np.asarray(dipole, dtype=np.float64)
    mu = mu / np.linalg.norm(mu)

    k_hat = np.stack(
        [sin_theta * np.cos(phi), sin_theta * np.sin(phi), cos_theta]
    )
    dot = np.tensordot(mu, k_hat, axes=1)
    factors = mu.reshape((3,) + (1,) * dot.ndim) - dot * k_hat
    return factors.astype(np.complex128)


def _pupil_components(geom: Geometry, params: OpticalPathParams) -> np.ndarray:
    """Un-normalized pupil components over the frequencies of ``geom``."""
    theta = np.arccos(geom.cos_theta)

    with np.errstate(divide="ignore", invalid="ignore"):
        amplitude = np.where(
            geom.mask & (geom.cos_theta > 0),
            params.apodization(theta) / geom.cos_theta,
            0.0,
        )
    amplitude = amplitude.astype(np.complex128)

    if params.aberrations is not None:
        phase = params.aberrations.phase(np.where(geom.mask, geom.rho, 0.0), geom.phi)
        amplitude = amplitude * np.exp(1j * phase)

    if params.transition_dipole is not None:
        factors = _dipole_factors(
            geom.sin_theta, geom.cos_theta, geom.phi, params.transition_dipole
        )
    elif params.polarization is Polarization.SCALAR:
        factors = np.ones((1,) + geom.shape, dtype=np.complex128)
    else:
        factors = compute_vectorial_factors(
            geom.sin_theta, geom.cos_theta, geom.phi, params.polarization
        )

    return factors * amplitude


def pupil_field(
    kx: np.ndarray,
    ky: np.ndarray,
    params: OpticalPathParams,
) -> Tuple[np.ndarray, np.ndarray]:
    """Evaluate the un-normalized pupil at arbitrary frequency coordinates.

    The amplitude is the aplanatic factor divided by cos θ, the Jacobian
    between the focal sphere and the (kx, ky) plane. Aberrations enter as a
    phase, the polarization (or a fixed dipole) as field components.

    Args:
        kx: Lateral x-frequencies (cycles/μm), any shape.
        ky: Lateral y-frequencies, same shape as ``kx``.
        params: Optical path parameters.

    Returns:
        Tuple ``(components, mask)``: complex128 components of shape
        ``(ncomp,) + kx.shape`` and the boolean aperture mask.
    """
    geom = geometry_at(kx, ky, params)
    return _pupil_components(geom, params), geom.mask


def pupil_xyz(
    shape: Tuple[int, int],
    params: OpticalPathParams,
    spacing: Tuple[float, float],
    geom: Geometry = None,
) -> np.ndarray:
    """Create the normalized centered pupil of a lateral grid.

    The pupil is scaled so that ``sum(|P|²) == ny * nx`` over all
    components. An inverse 2D FFT of any defocused version then carries
    unit energy.

    Args:
        shape: Lateral shape (ny, nx).
        params: Optical path parameters.
        spacing: Lateral pixel size (dy, dx) in μm.
        geom: Optional precomputed geometry of the same grid.

    Returns:
        Complex pupil of shape (ncomp, ny, nx), zero frequency at
        ``(ny // 2, nx // 2)``, dtype following ``params.precision``.

    Example:
        >>> pupil = pupil_xyz((128, 128), OpticalPathParams(), (0.1, 0.1))
        >>> pupil.shape
        (3, 128, 128)
    """
    if geom is None:
        geom = make_geometry(shape, spacing, params)

    components = _pupil_components(geom, params)

    energy = np.sum(np.abs(components) ** 2)
    scale = np.sqrt(shape[0] * shape[1] / energy)
    _log.debug(
        "Pupil %s with %d aperture pixels", shape, int(np.count_nonzero(geom.mask))
    )

    return (components * scale).astype(params.precision.complex_dtype)
