"""Widefield Point Spread Function computation."""

import logging
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .params import OpticalPathParams, PSFOptions
from .propagation import apsf
from .resampling import calc_with_resampling
from .sampling import resolve_sampling, resolve_shape

__all__ = ["amp_to_int", "psf_widefield"]

_log = logging.getLogger(__name__)


def amp_to_int(amp: np.ndarray) -> np.ndarray:
    """Intensity of a (possibly vectorial) amplitude field.

    Args:
        amp: Complex field with the components on the first axis.

    Returns:
        Real array ``sum_c |amp[c]|²`` with the component axis removed.
    """
    return np.sum(amp.real**2 + amp.imag**2, axis=0)


def psf_widefield(
    shape: Sequence[int],
    params: OpticalPathParams,
    options: Optional[PSFOptions] = None,
) -> Union[np.ndarray, Tuple[np.ndarray, np.ndarray]]:
    """Compute a widefield intensity PSF.

    With ``options.use_resampling`` the amplitude is computed on a 2x
    coarser grid with its axial carrier removed and Fourier upsampled,
    which is faster and usually accurate for Nyquist-sampled intensities.
    The returned amplitude is then demodulated by ``kz_mid_pos(params)``.

    Args:
        shape: Grid shape (nz, ny, nx).
        params: Optical path parameters. The apodization decides whether
            an excitation or an emission PSF is computed.
        options: Calculation options; ``sampling``, ``use_resampling`` and
            ``return_amplitude`` are used.

    Returns:
        Intensity of shape (nz, ny, nx) with unit focal-plane integral, or
        ``(intensity, amplitude)`` if ``options.return_amplitude``.

    Physics:
        PSF_A(x,y,z) = IFFT{ P(kx,ky) * exp(2πi * kz * z) }
        PSF(x,y,z) = Σ_c |PSF_A,c|²

    Example:
        >>> params = OpticalPathParams(wavelength=0.5, na=1.4, n=1.52)
        >>> psf = psf_widefield((64, 128, 128), params)
    """
    if options is None:
        options = PSFOptions()
    shape = resolve_shape(shape)
    sampling = resolve_sampling(options.sampling, params)

    if options.use_resampling:

        def fct(small_shape, small_sampling):
            return apsf(small_shape, params, sampling=small_sampling, center_kz=True)

        amp = calc_with_resampling(fct, shape, sampling, norm_amp=True)
    else:
        amp = apsf(shape, params, sampling=sampling)

    intensity = amp_to_int(amp)
    _log.debug("Widefield PSF %s, sampling %s", shape, sampling)

    if options.return_amplitude:
        return intensity, amp
    return intensity
