"""Confocal PSF computation.

The confocal PSF is the product of the excitation PSF and the detection
PSF, where the detection PSF is the emission PSF convolved with the
pinhole.

Theory:
    PSF_confocal = PSF_exc(λ_exc) × (PSF_em(λ_em) ⊗ Pinhole)

    For infinitely small pinholes: PSF_confocal ∝ PSF_exc × PSF_em
    For a fully open pinhole: PSF_confocal = PSF_exc

    The convolution is done per z-plane in Fourier space with closed-form
    pinhole transfer functions. Shifted pinholes (ISM detector elements)
    only add a phase ramp.

References:
    - Wilson, T. "Confocal Microscopy" (1990)
    - Sheppard, C.J.R. "Scanning confocal microscope" (1987)
"""

import logging
import warnings
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.special import j1

from ..errors import (
    ConfigurationError,
    PhysicalConstraintWarning,
    UnsupportedRequestError,
)
from ..utils.fourier import fftfreq, rfftfreq
from .params import OpticalPathParams, PinholeShape, PSFOptions
from .sampling import (
    au_per_pixel,
    check_amp_sampling,
    resolve_sampling,
    resolve_shape,
)
from .widefield import psf_widefield

__all__ = [
    "PinholeSpec",
    "disc_pinhole_ft",
    "box_pinhole_ft",
    "pinhole_au_to_pix",
    "confocal_int",
    "psf_confocal",
]

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PinholeSpec:
    """Detection pinhole in lateral pixels.

    Attributes:
        diameter: Pinhole size ``(dy, dx)`` in pixels. ``None`` means a
            fully open pinhole.
        shape: Pinhole shape.
        positions: Pinhole offsets ``(py, px)`` in pixels.
    """

    diameter: Optional[Tuple[float, float]] = None
    shape: PinholeShape = PinholeShape.DISC
    positions: Tuple[Tuple[float, float], ...] = ((0.0, 0.0),)


def _rfft_freqs(shape: Tuple[int, int]) -> Tuple[np.ndarray, np.ndarray]:
    """Frequencies in cycles/pixel on the rfft2 grid."""
    ny, nx = shape
    fy, fx = np.meshgrid(fftfreq(ny), rfftfreq(nx), indexing="ij")
    return fy, fx


def disc_pinhole_ft(
    shape: Tuple[int, int],
    diameter: Tuple[float, float],
) -> np.ndarray:
    """Fourier transform of an elliptical disc pinhole on the rfft2 grid.

    Args:
        shape: Lateral image shape (ny, nx).
        diameter: Disc diameters (Dy, Dx) in pixels.

    Returns:
        Real array of shape (ny, nx // 2 + 1). The zero-frequency value is
        the disc area in pixels.

    Physics:
        FT{disc}(f) = (π Dy Dx / 4) * 2 J1(π q) / (π q)
        q = sqrt((Dy fy)² + (Dx fx)²)
    """
    d_y, d_x = diameter
    fy, fx = _rfft_freqs(shape)
    arg = np.pi * np.sqrt((d_y * fy) ** 2 + (d_x * fx) ** 2)
    area = np.pi * d_y * d_x / 4

    with np.errstate(divide="ignore", invalid="ignore"):
        jinc = np.where(arg > 0, 2 * j1(arg) / arg, 1.0)
    return area * jinc


def box_pinhole_ft(
    shape: Tuple[int, int],
    diameter: Tuple[float, float],
) -> np.ndarray:
    """Fourier transform of a rectangular pinhole on the rfft2 grid.

    Args:
        shape: Lateral image shape (ny, nx).
        diameter: Side lengths (Dy, Dx) in pixels.

    Returns:
        Real array ``Dy Dx sinc(Dy fy) sinc(Dx fx)`` of shape
        (ny, nx // 2 + 1).
    """
    d_y, d_x = diameter
    fy, fx = _rfft_freqs(shape)
    return d_y * d_x * np.sinc(d_y * fy) * np.sinc(d_x * fx)


_PINHOLE_FT = {
    PinholeShape.DISC: disc_pinhole_ft,
    PinholeShape.BOX: box_pinhole_ft,
}


def _as_pair(value: Union[float, Sequence[float]]) -> Tuple[float, float]:
    if np.ndim(value) == 0:
        return (float(value), float(value))
    pair = tuple(float(v) for v in value)
    if len(pair) != 2:
        raise ConfigurationError(f"Expected a scalar or (y, x) pair, got {value}")
    return pair


def pinhole_au_to_pix(
    shape: Sequence[int],
    emission: OpticalPathParams,
    sampling: Sequence[float],
    pinhole: Optional[Union[float, Sequence[float]]],
) -> Optional[Tuple[float, float]]:
    """Convert a pinhole diameter from Airy units to lateral pixels.

    Args:
        shape: Grid shape (nz, ny, nx).
        emission: Emission path defining the Airy unit.
        sampling: Voxel size (dz, dy, dx) in μm.
        pinhole: Diameter in AU, scalar or (py, px). None means open.

    Returns:
        Diameter ``(Dy, Dx)`` in pixels, or None for a fully open pinhole.
        A pinhole wider than the image warns and is treated as open.
    """
    if pinhole is None:
        return None

    au_pix = au_per_pixel(emission, sampling)
    pinhole_au = _as_pair(pinhole)
    if any(p <= 0 for p in pinhole_au):
        raise ConfigurationError(f"Pinhole must be positive, got {pinhole}")

    diameter = tuple(p * a for p, a in zip(pinhole_au, au_pix))
    lateral = tuple(shape[-2:])
    if any(d > n for d, n in zip(diameter, lateral)):
        max_au = tuple(n / a for n, a in zip(lateral, au_pix))
        warnings.warn(
            f"Pinhole {pinhole_au} AU is larger than the image, maximal size is "
            f"{max_au} AU. Assuming a fully open pinhole.",
            PhysicalConstraintWarning,
            stacklevel=2,
        )
        return None
    return diameter


def confocal_int(
    psf_ex: np.ndarray,
    psf_em: np.ndarray,
    pinhole: Optional[PinholeSpec] = None,
    two_photon: bool = False,
) -> Union[np.ndarray, List[np.ndarray]]:
    """Combine excitation and emission intensities through a pinhole.

    The emission PSF of every z-plane is convolved with the pinhole,
    shifted to each pinhole position, and multiplied by the excitation
    PSF. A fully open pinhole collects the whole emission, so the result
    is the excitation PSF.

    Args:
        psf_ex: Excitation intensity (nz, ny, nx).
        psf_em: Emission intensity (nz, ny, nx).
        pinhole: Pinhole in pixels. None or a None diameter means open.
        two_photon: Square the excitation intensity first.

    Returns:
        One PSF per pinhole position: an array for a single position,
        otherwise a list of arrays.

    Example:
        >>> spec = PinholeSpec(diameter=(3.0, 3.0))
        >>> psf = confocal_int(psf_ex, psf_em, spec)
    """
    if two_photon:
        psf_ex = psf_ex**2
    if pinhole is None:
        pinhole = PinholeSpec()

    positions = list(pinhole.positions) or [(0.0, 0.0)]
    results = []

    if pinhole.diameter is None:
        results = [psf_ex for _ in positions]
    else:
        lateral = psf_em.shape[-2:]
        axes = (-2, -1)
        transfer = _PINHOLE_FT[pinhole.shape](lateral, pinhole.diameter)
        em_ft = np.fft.rfft2(psf_em, axes=axes)
        fy, fx = _rfft_freqs(lateral)

        for p_y, p_x in positions:
            shift = np.exp(-2j * np.pi * (fy * p_y + fx * p_x))
            detection = np.fft.irfft2(em_ft * (transfer * shift), s=lateral, axes=axes)
            results.append((detection * psf_ex).astype(psf_em.dtype, copy=False))

    _log.debug("Confocal detection at %d pinhole positions", len(results))
    if len(results) == 1:
        return results[0]
    return results


def psf_confocal(
    shape: Sequence[int],
    params: OpticalPathParams,
    options: Optional[PSFOptions] = None,
) -> Union[np.ndarray, List[np.ndarray]]:
    """Compute a confocal PSF.

    ``params`` describes the emission path, ``options.excitation`` the
    excitation path (typically with illumination apodization). With
    ``use_resampling`` each widefield intensity uses its own coarse-grid
    amplitude calculation.

    Args:
        shape: Grid shape (nz, ny, nx).
        params: Emission path parameters.
        options: Calculation options. ``excitation`` and ``pinhole``
            (diameter in AU of the emission path) are required.

    Returns:
        PSF of shape (nz, ny, nx), or a list of them for several
        ``pinhole_positions``.

    Raises:
        ConfigurationError: If the excitation or the pinhole is missing.
        UnsupportedRequestError: If an amplitude is requested.

    Example:
        >>> em = OpticalPathParams(wavelength=0.5, na=1.4, n=1.52)
        >>> ex = em.replace(wavelength=0.488, apodization=Apodization.ILLUMINATION)
        >>> opts = PSFOptions(excitation=ex, pinhole=0.5)
        >>> psf = psf_confocal((64, 128, 128), em, opts)
    """
    if options is None:
        options = PSFOptions()
    if options.excitation is None:
        raise ConfigurationError(
            "Confocal calculation needs excitation parameters (options.excitation)"
        )
    if options.pinhole is None:
        raise ConfigurationError(
            "Confocal calculation needs a pinhole diameter in AU (options.pinhole)"
        )
    if options.return_amplitude:
        raise UnsupportedRequestError(
            "A confocal PSF has no amplitude spread function, "
            "use return_amplitude=False"
        )

    shape = resolve_shape(shape)
    sampling = resolve_sampling(options.sampling, params)
    excitation = options.excitation

    # the product of both amplitudes has the bandwidth of the combined wavelength
    lam_eff = 1 / (1 / excitation.wavelength + 1 / params.wavelength)
    check_amp_sampling(params.replace(wavelength=lam_eff), tuple(2 * s for s in sampling))

    wf_options = PSFOptions(sampling=sampling, use_resampling=options.use_resampling)
    psf_ex = psf_widefield(shape, excitation, wf_options)
    psf_em = psf_widefield(shape, params, wf_options)

    positions = options.pinhole_positions or [(0.0, 0.0)]
    pinhole = PinholeSpec(
        diameter=pinhole_au_to_pix(shape, params, sampling, options.pinhole),
        shape=options.pinhole_shape or PinholeShape.DISC,
        positions=tuple((float(p[0]), float(p[1])) for p in positions),
    )
    return confocal_int(psf_ex, psf_em, pinhole, two_photon=options.two_photon)
