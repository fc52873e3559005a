"""Coarse-grid evaluation with Fourier upsampling."""

import logging
from typing import Callable, Sequence, Tuple

import numpy as np

from ..utils.fourier import fourier_resample

__all__ = ["calc_with_resampling", "normalize_focal_plane", "coarse_grid"]

_log = logging.getLogger(__name__)


def normalize_focal_plane(amp: np.ndarray) -> np.ndarray:
    """Scale an amplitude field so that its focal plane has unit energy.

    Args:
        amp: Field of shape (ncomp, nz, ny, nx), focus at z index nz // 2.

    Returns:
        Scaled field with ``sum(|amp[:, nz // 2]|²) == 1``.
    """
    focal = amp[:, amp.shape[1] // 2]
    energy = np.sum(np.abs(focal) ** 2)
    if energy == 0:
        return amp
    return amp / np.sqrt(energy).astype(amp.real.dtype)


def coarse_grid(
    shape: Sequence[int],
    sampling: Sequence[float],
) -> Tuple[Tuple[int, ...], Tuple[float, ...]]:
    """Halve every even axis larger than one and double its spacing."""
    small_shape = []
    small_sampling = []
    for n, s in zip(shape, sampling):
        if n > 1 and n % 2 == 0:
            small_shape.append(n // 2)
            small_sampling.append(2 * s)
        else:
            small_shape.append(n)
            small_sampling.append(s)
    return tuple(small_shape), tuple(small_sampling)


def calc_with_resampling(
    fct: Callable,
    shape: Sequence[int],
    sampling: Sequence[float],
    norm_amp: bool = False,
) -> np.ndarray:
    """Evaluate ``fct`` on a 2x coarser grid and upsample to ``shape``.

    The upsampling zero pads the centered spectrum, so the result is exact
    only for fields band limited to the coarse grid. Fields that are not
    come back aliased; ``fct`` is expected to warn about that through its
    own sampling checks.

    Args:
        fct: Callable ``fct(shape, sampling)`` returning an amplitude
            (ncomp, nz, ny, nx) or an intensity (nz, ny, nx).
        shape: Target shape (nz, ny, nx).
        sampling: Target sampling (dz, dy, dx).
        norm_amp: If True the result is an amplitude and is renormalized
            to unit focal-plane energy. Otherwise it is an intensity and
            every plane keeps its integral.

    Returns:
        Array with trailing shape ``shape``.

    Example:
        >>> fct = lambda sz, s: apsf(sz, params, sampling=s, center_kz=True)
        >>> amp = calc_with_resampling(fct, (64, 128, 128), sampling, norm_amp=True)
    """
    shape = tuple(int(n) for n in shape)
    small_shape, small_sampling = coarse_grid(shape, sampling)
    _log.debug("Resampling %s -> %s", small_shape, shape)

    result = fct(small_shape, small_sampling)
    result = fourier_resample(result, shape, axes=(-3, -2, -1))

    if norm_amp:
        return normalize_focal_plane(result)

    lateral_ratio = (small_shape[1] * small_shape[2]) / (shape[1] * shape[2])
    return result * result.dtype.type(lateral_ratio)
