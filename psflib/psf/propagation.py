"""Amplitude spread function (ASF) propagation methods.

Every method turns the pupil of one optical path into the complex focal
field of shape (ncomp, nz, ny, nx), centered at index n // 2 on every
axis and normalized to unit energy in the focal plane (z index nz // 2).

Methods:
    - apsf_propagate: plane-by-plane angular spectrum propagation
    - apsf_propagate_iterative: stepwise propagation with an absorbing
      lateral border
    - apsf_shell: pupil placed on the 3D McCutchen shell, one 3D FFT
    - apsf_sinc_r: band-limited closed form of the full spherical shell
    - apsf_richards_wolf: Debye integral by quadrature (richards_wolf.py)

Reference:
    McCutchen, C.W. (1964), "Generalized aperture and the three-dimensional
    diffraction image", J. Opt. Soc. Am. 54(2): 240-244
"""

import logging
import warnings
from typing import Optional, Sequence

import numpy as np
from scipy.signal.windows import tukey

from ..errors import ConfigurationError, PhysicalConstraintWarning
from ..utils.fourier import centered_coords, centered_freqs, ift2d
from .params import Method, OpticalPathParams, make_geometry
from .pupil import pupil_xyz
from .resampling import normalize_focal_plane
from .richards_wolf import apsf_richards_wolf
from .sampling import (
    check_amp_sampling,
    kz_mid_pos,
    resolve_sampling,
    resolve_shape,
)

__all__ = [
    "apsf",
    "apsf_propagate",
    "apsf_propagate_iterative",
    "apsf_shell",
    "apsf_sinc_r",
    "apsf_richards_wolf",
]

_log = logging.getLogger(__name__)

# Tukey taper fraction of the iterative absorbing border (1/8 per side)
BORDER_FRACTION = 0.125

# Flat half width and outer edge of the sinc-r shell band, in kz bins
SHELL_BAND_FLAT = 1.5
SHELL_BAND_EDGE = 3.0


def _prepare(shape, params, sampling, center_kz):
    """Shared setup: validated grid, centered pupil, and shifted kz."""
    shape = resolve_shape(shape)
    sampling = resolve_sampling(sampling, params)
    check_amp_sampling(params, sampling)

    geom = make_geometry(shape[1:], sampling[1:], params)
    pupil = pupil_xyz(shape[1:], params, sampling[1:], geom=geom)

    offset = kz_mid_pos(params) if center_kz else 0.0
    kz = np.where(geom.mask, geom.kz - offset, 0.0)
    return shape, sampling, geom, pupil, kz


def apsf_propagate(
    shape: Sequence[int],
    params: OpticalPathParams,
    sampling: Optional[Sequence[float]] = None,
    center_kz: bool = False,
) -> np.ndarray:
    """ASF by direct angular spectrum propagation of every plane.

    Each plane is ``ifft2(P * exp(2πi kz z))``. The lateral grid is
    periodic, so strongly defocused planes wrap around the borders.

    Args:
        shape: Grid shape (nz, ny, nx).
        params: Optical path parameters.
        sampling: Voxel size (dz, dy, dx) in μm, Nyquist if None.
        center_kz: Demodulate the axial carrier ``kz_mid_pos(params)``.

    Returns:
        Complex field of shape (ncomp, nz, ny, nx).

    Example:
        >>> amp = apsf_propagate((32, 64, 64), OpticalPathParams())
    """
    shape, sampling, geom, pupil, kz = _prepare(shape, params, sampling, center_kz)
    nz = shape[0]

    out = np.empty((pupil.shape[0],) + shape, dtype=params.precision.complex_dtype)
    for j, z in enumerate(centered_coords(nz, sampling[0])):
        defocus = np.exp(2j * np.pi * kz * z)
        out[:, j] = ift2d(pupil * defocus)

    return normalize_focal_plane(out)


def apsf_propagate_iterative(
    shape: Sequence[int],
    params: OpticalPathParams,
    sampling: Optional[Sequence[float]] = None,
    center_kz: bool = False,
) -> np.ndarray:
    """ASF by stepwise propagation with an absorbing lateral border.

    Starting from the focal plane, the field is propagated one ``dz`` step
    at a time in both directions. After a plane is stored it is multiplied
    by a Tukey window and projected back onto the aperture, which removes
    the light that would otherwise wrap around the periodic borders.

    Args:
        shape: Grid shape (nz, ny, nx).
        params: Optical path parameters.
        sampling: Voxel size (dz, dy, dx) in μm, Nyquist if None.
        center_kz: Demodulate the axial carrier ``kz_mid_pos(params)``.

    Returns:
        Complex field of shape (ncomp, nz, ny, nx).
    """
    shape, sampling, geom, pupil, kz = _prepare(shape, params, sampling, center_kz)
    nz, ny, nx = shape
    axes = (-2, -1)

    # work in corner layout, shift once at the end
    mask = np.fft.ifftshift(geom.mask)
    step = np.fft.ifftshift(np.exp(2j * np.pi * kz * sampling[0]) * geom.mask)
    window = np.fft.ifftshift(
        np.outer(
            tukey(ny, alpha=2 * BORDER_FRACTION), tukey(nx, alpha=2 * BORDER_FRACTION)
        )
    )
    start = np.fft.ifftshift(pupil, axes=axes)

    out = np.empty((pupil.shape[0],) + shape, dtype=params.precision.complex_dtype)
    mid = nz // 2
    out[:, mid] = np.fft.ifft2(start, axes=axes)

    for direction, stop, propagator in ((1, nz, step), (-1, -1, np.conj(step))):
        field = start
        for j in range(mid + direction, stop, direction):
            field = field * propagator
            plane = np.fft.ifft2(field, axes=axes)
            out[:, j] = plane
            field = np.fft.fft2(plane * window, axes=axes) * mask

    out = np.fft.fftshift(out, axes=axes)
    _log.debug("Iterative propagation over %d planes", nz)
    return normalize_focal_plane(out)


def apsf_shell(
    shape: Sequence[int],
    params: OpticalPathParams,
    sampling: Optional[Sequence[float]] = None,
    center_kz: bool = False,
) -> np.ndarray:
    """ASF from the pupil placed on the 3D frequency shell.

    Every in-aperture pupil value is put at its axial frequency
    ``kz(kx, ky)``, split linearly between the two neighbouring kz bins,
    and the whole volume is inverse transformed at once. The kz bins wrap
    modulo nz.

    Args:
        shape: Grid shape (nz, ny, nx).
        params: Optical path parameters.
        sampling: Voxel size (dz, dy, dx) in μm, Nyquist if None.
        center_kz: Demodulate the axial carrier ``kz_mid_pos(params)``.

    Returns:
        Complex field of shape (ncomp, nz, ny, nx).
    """
    shape, sampling, geom, pupil, kz = _prepare(shape, params, sampling, center_kz)
    nz = shape[0]
    dkz = 1.0 / (nz * sampling[0])

    iy, ix = np.nonzero(geom.mask)
    pos = kz[iy, ix] / dkz
    lower = np.floor(pos)
    frac = pos - lower
    lower_bin = lower.astype(np.int64) % nz
    upper_bin = (lower_bin + 1) % nz
    values = pupil[:, iy, ix].astype(np.complex128)

    # kz axis in FFT order, lateral axes centered
    spectrum = np.zeros((pupil.shape[0],) + shape, dtype=np.complex128)
    spectrum[:, lower_bin, iy, ix] += values * (1 - frac)
    spectrum[:, upper_bin, iy, ix] += values * frac

    spectrum = np.fft.ifftshift(spectrum, axes=(-2, -1))
    axes = (1, 2, 3)
    amp = nz * np.fft.fftshift(np.fft.ifftn(spectrum, axes=axes), axes=axes)

    return normalize_focal_plane(amp.astype(params.precision.complex_dtype))


def apsf_sinc_r(
    shape: Sequence[int],
    params: OpticalPathParams,
    sampling: Optional[Sequence[float]] = None,
    center_kz: bool = False,
) -> np.ndarray:
    """ASF from the closed-form Fourier pair of the spherical shell.

    ``sinc(2 k0 r)`` is the field of a full shell of radius k0. Its 3D
    spectrum is cut down to a smooth band of a few kz bins around the cap
    ``kz(kx, ky)``, weighted by the pupil and by ``cos θ`` (shell to cap
    projection), then transformed back.

    Args:
        shape: Grid shape (nz, ny, nx).
        params: Optical path parameters.
        sampling: Voxel size (dz, dy, dx) in μm, Nyquist if None.
        center_kz: Demodulate the axial carrier ``kz_mid_pos(params)``.

    Returns:
        Complex field of shape (ncomp, nz, ny, nx).
    """
    shape, sampling, geom, pupil, _ = _prepare(shape, params, sampling, False)
    nz, ny, nx = shape
    dz = sampling[0]

    if dz > params.wavelength / (2 * params.n):
        warnings.warn(
            f"Axial sampling {dz} aliases the full spherical shell, "
            f"sinc-r needs dz <= {params.wavelength / (2 * params.n):.4g}",
            PhysicalConstraintWarning,
            stacklevel=2,
        )

    z, y, x = np.meshgrid(
        centered_coords(nz, dz),
        centered_coords(ny, sampling[1]),
        centered_coords(nx, sampling[2]),
        indexing="ij",
    )
    r = np.sqrt(z**2 + y**2 + x**2)
    axes3 = (0, 1, 2)
    shell = np.fft.fftshift(
        np.fft.fftn(np.fft.ifftshift(np.sinc(2 * params.k0 * r)), axes=axes3),
        axes=axes3,
    )

    dkz = 1.0 / (nz * dz)
    period = nz * dkz
    kz_axis = centered_freqs(nz, dz)[:, None, None]
    distance = np.abs(
        np.mod(kz_axis - geom.kz[None] + period / 2, period) - period / 2
    )
    taper = 0.5 * (
        1
        + np.cos(
            np.pi
            * (distance - SHELL_BAND_FLAT * dkz)
            / ((SHELL_BAND_EDGE - SHELL_BAND_FLAT) * dkz)
        )
    )
    band = np.where(
        distance <= SHELL_BAND_FLAT * dkz,
        1.0,
        np.where(distance <= SHELL_BAND_EDGE * dkz, taper, 0.0),
    )
    band = band * (geom.mask * geom.cos_theta)[None]

    spectrum = shell[None] * band[None] * pupil[:, None]
    axes = (1, 2, 3)
    amp = np.fft.fftshift(
        np.fft.ifftn(np.fft.ifftshift(spectrum, axes=axes), axes=axes), axes=axes
    )

    if center_kz:
        demod = np.exp(-2j * np.pi * kz_mid_pos(params) * centered_coords(nz, dz))
        amp = amp * demod[None, :, None, None]

    return normalize_focal_plane(amp.astype(params.precision.complex_dtype))


_METHODS = {
    Method.PROPAGATE: apsf_propagate,
    Method.PROPAGATE_ITERATIVE: apsf_propagate_iterative,
    Method.SHELL: apsf_shell,
    Method.SINC_R: apsf_sinc_r,
    Method.RICHARDS_WOLF: apsf_richards_wolf,
}


def apsf(
    shape: Sequence[int],
    params: OpticalPathParams,
    sampling: Optional[Sequence[float]] = None,
    method: Optional[Method] = None,
    center_kz: bool = False,
) -> np.ndarray:
    """Compute the amplitude spread function with the selected method.

    Args:
        shape: Grid shape (nz, ny, nx).
        params: Optical path parameters.
        sampling: Voxel size (dz, dy, dx) in μm, Nyquist if None.
        method: Algorithm, ``params.method`` if None.
        center_kz: Demodulate the axial carrier ``kz_mid_pos(params)``.

    Returns:
        Complex field of shape (ncomp, nz, ny, nx).

    Raises:
        ConfigurationError: If the method is unknown.

    Example:
        >>> amp = apsf((64, 128, 128), params, sampling=(0.15, 0.1, 0.1))
        >>> amp_rw = apsf((64, 128, 128), params, method=Method.RICHARDS_WOLF)
    """
    if method is None:
        method = params.method
    try:
        fct = _METHODS[Method(method)]
    except (ValueError, KeyError):
        raise ConfigurationError(f"Unknown ASF method: {method!r}") from None

    _log.debug("Computing ASF %s with %s", tuple(shape), fct.__name__)
    return fct(shape, params, sampling=sampling, center_kz=center_kz)
