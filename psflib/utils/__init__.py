"""Mathematical utilities for Fourier optics."""

from .fourier import (
    fftfreq,
    rfftfreq,
    centered_coords,
    centered_freqs,
    ift2d,
    fourier_resample,
)
from .zernike import (
    zernike_polynomial,
    ansi_to_nm,
    noll_to_nm,
    noll_to_ansi,
)
from .region import select_region

__all__ = [
    # Fourier utilities
    "fftfreq",
    "rfftfreq",
    "centered_coords",
    "centered_freqs",
    "ift2d",
    "fourier_resample",
    # Zernike polynomials
    "zernike_polynomial",
    "ansi_to_nm",
    "noll_to_nm",
    "noll_to_ansi",
    # Regions
    "select_region",
]
