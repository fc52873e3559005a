"""Zernike polynomial computation.

Uses OSA/ANSI standard indexing (0-based):
    j = (n * (n + 2) + m) / 2

where n is radial order and m is azimuthal frequency. Noll indices
(1-based) are converted through their (n, m) orders.

Reference:
    Thibos et al. (2002), "Standards for Reporting the Optical
    Aberrations of Eyes", J. Refractive Surgery 18(5): S652-S660
    Noll, R.J. (1976), "Zernike polynomials and atmospheric turbulence",
    J. Opt. Soc. Am. 66(3): 207-211
"""

from functools import lru_cache
from math import factorial

import numpy as np

__all__ = [
    "zernike_polynomial",
    "ansi_to_nm",
    "noll_to_nm",
    "noll_to_ansi",
]


def ansi_to_nm(j: int) -> tuple[int, int]:
    """Convert ANSI single index j to (n, m) radial/azimuthal orders.

    Args:
        j: ANSI/OSA single index (0-based).

    Returns:
        Tuple (n, m) where n is radial order, m is azimuthal frequency.

    Example:
        >>> ansi_to_nm(4)  # Defocus
        (2, 0)
        >>> ansi_to_nm(12)  # Spherical
        (4, 0)
    """
    if j < 0:
        raise ValueError(f"ANSI index must be >= 0, got {j}")

    # Find n such that n*(n+1)/2 <= j < (n+1)*(n+2)/2
    n = int(np.ceil((-3 + np.sqrt(9 + 8 * j)) / 2))
    m = 2 * j - n * (n + 2)

    return n, m


def noll_to_nm(noll_index: int) -> tuple[int, int]:
    """Convert Noll index (1-based) to (n, m) orders.

    Even Noll indices carry the cosine (m > 0) terms, odd ones the sine
    (m < 0) terms.

    Example:
        >>> noll_to_nm(4)  # Defocus
        (2, 0)
        >>> noll_to_nm(11)  # Spherical
        (4, 0)
    """
    if noll_index < 1:
        raise ValueError(f"Noll index must be >= 1, got {noll_index}")

    n = 0
    while (n + 1) * (n + 2) // 2 < noll_index:
        n += 1
    # position within the radial order, 0-based
    k = noll_index - n * (n + 1) // 2 - 1
    m_abs = 2 * ((k + (n % 2 == 0)) // 2) + (n % 2)
    if m_abs == 0:
        return n, 0
    m = m_abs if noll_index % 2 == 0 else -m_abs
    return n, m


def noll_to_ansi(noll_index: int) -> int:
    """Convert Noll index (1-based) to ANSI index (0-based).

    Example:
        >>> noll_to_ansi(4)
        4
        >>> noll_to_ansi(11)
        12
    """
    n, m = noll_to_nm(noll_index)
    return (n * (n + 2) + m) // 2


@lru_cache(maxsize=256)
def _radial_coefficients(m: int, n: int) -> tuple:
    """Compute coefficients for radial polynomial R_n^m.

    Cached for efficiency when evaluating many polynomials.
    """
    coeffs = []
    num_terms = (n - m) // 2 + 1

    for k in range(num_terms):
        sign = (-1) ** k
        numerator = factorial(n - k)
        denominator = (
            factorial(k)
            * factorial((n + m) // 2 - k)
            * factorial((n - m) // 2 - k)
        )
        power = n - 2 * k
        coeffs.append((sign * numerator / denominator, power))

    return tuple(coeffs)


def _radial_polynomial(m: int, n: int, rho: np.ndarray) -> np.ndarray:
    """Compute radial Zernike polynomial R_n^|m|(rho)."""
    result = np.zeros_like(rho, dtype=np.float64)

    for coeff, power in _radial_coefficients(m, n):
        result += coeff * np.power(rho, power)

    return result


def zernike_polynomial(j: int, rho: np.ndarray, phi: np.ndarray) -> np.ndarray:
    """Evaluate single Zernike polynomial Z_j.

    Uses OSA/ANSI indexing (0-based) with orthonormal normalization.

    Args:
        j: ANSI/OSA single index.
        rho: Normalized radial coordinate (0 to 1 within pupil).
        phi: Azimuthal angle (radians).

    Returns:
        Z_j evaluated at each (rho, phi) point.

    Example:
        >>> Z4 = zernike_polynomial(4, rho, phi)  # defocus
    """
    n, m = ansi_to_nm(j)

    norm = np.sqrt(2.0 * (n + 1) / (1.0 + float(m == 0)))
    R = _radial_polynomial(abs(m), n, rho)

    if m >= 0:
        return norm * R * np.cos(m * phi)
    return -norm * R * np.sin(abs(m) * phi)
