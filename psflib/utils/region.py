"""Centered crop and pad utilities."""

import numpy as np

__all__ = ["select_region"]


def select_region(
    arr: np.ndarray,
    new_shape: tuple[int, ...],
    pad_value: float = 0,
) -> np.ndarray:
    """Crop or pad an array around its center.

    The center index ``n // 2`` of every axis is mapped to ``m // 2`` of the
    output axis, so centered (fftshift layout) arrays stay centered. Axes can
    shrink and grow in the same call.

    Args:
        arr: N-dimensional input array.
        new_shape: Output shape. Leading axes not covered keep their size,
            so a 3-tuple can be applied to a ``(ncomp, nz, ny, nx)`` field.
        pad_value: Fill value for samples outside the input.

    Returns:
        New array of the requested shape.

    Example:
        >>> psf = np.random.rand(64, 128, 128)
        >>> center = select_region(psf, (16, 32, 32))
    """
    new_shape = tuple(int(s) for s in new_shape)
    if len(new_shape) > arr.ndim:
        raise ValueError(
            f"new_shape has {len(new_shape)} dimensions, array has {arr.ndim}"
        )
    full_shape = arr.shape[: arr.ndim - len(new_shape)] + new_shape

    result = np.full(full_shape, pad_value, dtype=arr.dtype)
    src = []
    dst = []
    for n_in, n_out in zip(arr.shape, full_shape):
        # input index i lands at output index i + offset
        offset = n_out // 2 - n_in // 2
        lo = max(0, -offset)
        hi = min(n_in, n_out - offset)
        src.append(slice(lo, hi))
        dst.append(slice(lo + offset, hi + offset))

    result[tuple(dst)] = arr[tuple(src)]
    return result
