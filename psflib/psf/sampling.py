"""Sampling limits and Airy-unit conversions.

Limits are returned in array axis order ``(dz, dy, dx)`` and in microns.
The Abbe limit is the largest spacing at which an amplitude spread function
is still sampled without aliasing; an intensity spread function has twice
the bandwidth and needs the Nyquist limit (half the Abbe limit).
"""

import logging
import warnings
from typing import Optional, Sequence, Tuple

from ..errors import ConfigurationError, PhysicalConstraintWarning
from .params import OpticalPathParams

__all__ = [
    "get_abbe_limit",
    "get_nyquist_limit",
    "get_sampling",
    "resolve_shape",
    "resolve_sampling",
    "check_amp_sampling",
    "kz_mid_pos",
    "airy_unit",
    "au_per_pixel",
    "four_pi_nyquist",
]

_log = logging.getLogger(__name__)


def get_abbe_limit(params: OpticalPathParams) -> Tuple[float, float, float]:
    """Abbe limit ``(λ/(n(1 - cos α)), λ/(2 NA), λ/(2 NA))``.

    Example:
        >>> get_abbe_limit(OpticalPathParams(wavelength=0.5, na=1.0, n=1.0))
        (0.5, 0.25, 0.25)
    """
    lateral = params.wavelength / (2 * params.na)
    axial = params.wavelength / (params.n * (1 - params.cos_alpha))
    return (axial, lateral, lateral)


def get_nyquist_limit(params: OpticalPathParams) -> Tuple[float, float, float]:
    """Nyquist limit of the intensity, half the Abbe limit."""
    return tuple(s / 2 for s in get_abbe_limit(params))


def get_sampling(params: OpticalPathParams) -> Tuple[float, float, float]:
    """Default voxel size of a PSF calculation (the Nyquist limit)."""
    return get_nyquist_limit(params)


def resolve_shape(shape: Sequence[int]) -> Tuple[int, int, int]:
    """Validate a grid shape ``(nz, ny, nx)`` and return it as ints.

    Raises:
        ConfigurationError: If the shape is not three sizes >= 1.
    """
    shape = tuple(int(n) for n in shape)
    if len(shape) != 3 or any(n < 1 for n in shape):
        raise ConfigurationError(f"Shape must be (nz, ny, nx) >= 1, got {shape}")
    return shape


def resolve_sampling(
    sampling: Optional[Sequence[float]],
    params: OpticalPathParams,
) -> Tuple[float, float, float]:
    """Return the caller's sampling as floats, or the default one if ``None``.

    Raises:
        ConfigurationError: If the sampling is not three positive spacings.
    """
    if sampling is None:
        sampling = get_sampling(params)
        _log.debug("Using Nyquist sampling %s", sampling)
        return sampling

    sampling = tuple(float(s) for s in sampling)
    if len(sampling) != 3:
        raise ConfigurationError(
            f"Sampling must be (dz, dy, dx), got {len(sampling)} values"
        )
    if any(s <= 0 for s in sampling):
        raise ConfigurationError(f"Sampling must be positive, got {sampling}")
    return sampling


def check_amp_sampling(
    params: OpticalPathParams,
    sampling: Sequence[float],
) -> bool:
    """Check that an amplitude spread function is sampled finely enough.

    Issues a PhysicalConstraintWarning if any spacing exceeds the Abbe
    limit. The calculation continues with an aliased result.

    Returns:
        True if the sampling is sufficient.
    """
    abbe = get_abbe_limit(params)
    if any(s > a for s, a in zip(sampling, abbe)):
        warnings.warn(
            f"Amplitude undersampled: sampling {tuple(sampling)} exceeds the "
            f"Abbe limit {abbe}. Results will be aliased.",
            PhysicalConstraintWarning,
            stacklevel=3,
        )
        return False
    return True


def kz_mid_pos(params: OpticalPathParams) -> float:
    """Center of the axial band of the amplitude, ``k0 (1 + cos α) / 2``."""
    return params.k0 * (1 + params.cos_alpha) / 2


def airy_unit(params: OpticalPathParams) -> float:
    """Airy unit ``1.22 λ / NA``, the diameter of the Airy disc in μm."""
    return 1.22 * params.wavelength / params.na


def au_per_pixel(
    params: OpticalPathParams,
    sampling: Sequence[float],
) -> Tuple[float, float]:
    """Size of one Airy unit in lateral pixels ``(AU/dy, AU/dx)``."""
    au = airy_unit(params)
    return (au / sampling[1], au / sampling[2])


def four_pi_nyquist(
    excitation: OpticalPathParams,
    emission: OpticalPathParams,
    two_photon: bool = False,
) -> Tuple[float, float, float]:
    """Nyquist sampling of a 4Pi PSF.

    The excitation and emission limits combine as ``1/(1/a + 1/b)``. The
    lateral limits use the NA. The axial limit uses the refractive index,
    as the two counter-propagating arms span the whole sphere. For
    two-photon excitation the excitation wavelength is halved.

    Returns:
        Sampling ``(dz, dy, dx)``.
    """
    lam_ex = excitation.wavelength / 2 if two_photon else excitation.wavelength
    lam_em = emission.wavelength

    def combine(a, b):
        return 1 / (1 / a + 1 / b)

    lateral = combine(lam_ex / excitation.na / 2, lam_em / emission.na / 2)
    axial = combine(lam_ex / excitation.n / 2, lam_em / emission.n / 2)
    return (axial, lateral, lateral)
