"""Fourier transform utilities.

All helpers use the centered convention: the origin of real space and the
zero frequency both sit at index ``n // 2`` (``numpy.fft.fftshift`` layout).
"""

from typing import Sequence

import numpy as np
from numpy.fft import fftfreq, rfftfreq

__all__ = [
    "fftfreq",
    "rfftfreq",
    "centered_coords",
    "centered_freqs",
    "ift2d",
    "fourier_resample",
]


def centered_coords(n: int, spacing: float = 1.0) -> np.ndarray:
    """Real-space coordinates with the origin at index ``n // 2``.

    Args:
        n: Number of samples.
        spacing: Sample spacing (e.g., dz for the z-axis).

    Returns:
        1D array ``(arange(n) - n // 2) * spacing``.

    Example:
        >>> centered_coords(4, 0.5)
        array([-1. , -0.5,  0. ,  0.5])
    """
    return (np.arange(n) - n // 2) * float(spacing)


def centered_freqs(n: int, spacing: float = 1.0) -> np.ndarray:
    """Frequencies (cycles per unit length) with zero at index ``n // 2``."""
    return np.fft.fftshift(fftfreq(n, d=spacing))


def ift2d(arr: np.ndarray) -> np.ndarray:
    """Centered inverse 2D FFT over the last two axes."""
    axes = (-2, -1)
    return np.fft.fftshift(
        np.fft.ifft2(np.fft.ifftshift(arr, axes=axes), axes=axes), axes=axes
    )


def fourier_resample(
    arr: np.ndarray,
    new_shape: Sequence[int],
    axes: Sequence[int] | None = None,
) -> np.ndarray:
    """Upsample a centered array by zero padding its spectrum.

    The origin (index ``n // 2``) is preserved, and sample values of a
    band-limited signal are reproduced. For even input sizes the Nyquist bin
    has no partner; it is split in halves between the two new bins at
    ``-n/2`` and ``+n/2`` so that real inputs stay real.

    Args:
        arr: Centered real or complex array.
        new_shape: Target sizes, one per entry of ``axes``. Each must be at
            least the current size.
        axes: Axes to resample. Defaults to the last ``len(new_shape)`` axes.

    Returns:
        Resampled array. Real input gives real output.

    Raises:
        ValueError: If shapes and axes disagree or a size would shrink.
    """
    new_shape = tuple(int(s) for s in new_shape)
    if axes is None:
        axes = tuple(range(arr.ndim - len(new_shape), arr.ndim))
    axes = tuple(a % arr.ndim for a in axes)
    if len(axes) != len(new_shape):
        raise ValueError(
            f"Number of axes ({len(axes)}) must match new_shape ({len(new_shape)})"
        )

    is_real = not np.iscomplexobj(arr)
    spectrum = np.fft.fftshift(
        np.fft.fftn(np.fft.ifftshift(arr, axes=axes), axes=axes), axes=axes
    )

    scale = 1.0
    for ax, n_new in zip(axes, new_shape):
        n_old = spectrum.shape[ax]
        if n_new < n_old:
            raise ValueError(
                f"Cannot resample axis {ax} from {n_old} down to {n_new}"
            )
        if n_new == n_old:
            continue
        scale *= n_new / n_old
        spectrum = _pad_spectrum_axis(spectrum, ax, n_new)

    result = np.fft.fftshift(
        np.fft.ifftn(np.fft.ifftshift(spectrum, axes=axes), axes=axes), axes=axes
    )
    result = result * scale
    if is_real:
        return result.real.astype(arr.dtype, copy=False)
    return result.astype(arr.dtype, copy=False)


def _pad_spectrum_axis(spectrum: np.ndarray, axis: int, n_new: int) -> np.ndarray:
    """Zero pad a centered spectrum along one axis, splitting the Nyquist bin."""
    n_old = spectrum.shape[axis]
    out_shape = list(spectrum.shape)
    out_shape[axis] = n_new
    out = np.zeros(out_shape, dtype=spectrum.dtype)

    start = n_new // 2 - n_old // 2
    dest = [slice(None)] * spectrum.ndim
    dest[axis] = slice(start, start + n_old)
    out[tuple(dest)] = spectrum

    if n_old % 2 == 0:
        # index 0 of the old centered spectrum is the unpaired -n/2 bin
        src = [slice(None)] * spectrum.ndim
        src[axis] = slice(0, 1)
        nyquist = spectrum[tuple(src)] / 2
        low = list(dest)
        low[axis] = slice(start, start + 1)
        high = list(dest)
        high[axis] = slice(start + n_old, start + n_old + 1)
        out[tuple(low)] = nyquist
        out[tuple(high)] = nyquist

    return out
