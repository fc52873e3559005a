"""Optical path parameters, calculation options and pupil-plane geometry.

All physical dimensions are in microns and spatial frequencies in
cycles/μm. Parameter objects are immutable; derived configurations are
created with ``replace``.
"""

import dataclasses
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import ConfigurationError
from ..utils.fourier import centered_freqs
from ..utils.zernike import noll_to_ansi, zernike_polynomial

__all__ = [
    "Mode",
    "Method",
    "Polarization",
    "Apodization",
    "Precision",
    "PinholeShape",
    "Aberrations",
    "OpticalPathParams",
    "PSFOptions",
    "Geometry",
    "geometry_at",
    "make_geometry",
]


class Mode(Enum):
    """Imaging mode of the microscope."""

    WIDEFIELD = "widefield"
    CONFOCAL = "confocal"
    ISM = "ism"
    TWO_PHOTON = "two_photon"
    FOUR_PI = "four_pi"


class Method(Enum):
    """Algorithm used to compute the amplitude spread function."""

    PROPAGATE = "propagate"
    PROPAGATE_ITERATIVE = "propagate_iterative"
    SHELL = "shell"
    SINC_R = "sinc_r"
    RICHARDS_WOLF = "richards_wolf"


class Polarization(Enum):
    """Pupil-plane polarization state.

    ``SCALAR`` yields a single field component, all other states yield the
    three (x, y, z) components of the focal field.
    """

    SCALAR = "scalar"
    CIRCULAR = "circular"
    X = "x"
    Y = "y"

    @property
    def jones(self) -> Tuple[complex, complex]:
        """Pupil-plane Jones vector (ex, ey)."""
        if self is Polarization.X:
            return (1.0, 0.0)
        if self is Polarization.Y:
            return (0.0, 1.0)
        if self is Polarization.CIRCULAR:
            return (1 / math.sqrt(2), 1j / math.sqrt(2))
        raise ValueError("Scalar polarization has no Jones vector")


class Apodization(Enum):
    """Aplanatic amplitude factor of an objective obeying the sine condition.

    Illumination paths carry ``sqrt(cos θ)``, detection paths
    ``1/sqrt(cos θ)``.
    """

    ILLUMINATION = "illumination"
    DETECTION = "detection"
    NONE = "none"

    def __call__(self, theta: np.ndarray) -> np.ndarray:
        cos_theta = np.cos(theta)
        if self is Apodization.ILLUMINATION:
            return np.sqrt(np.maximum(cos_theta, 0.0))
        if self is Apodization.DETECTION:
            with np.errstate(divide="ignore", invalid="ignore"):
                return np.where(cos_theta > 0, 1.0 / np.sqrt(cos_theta), 0.0)
        return np.ones_like(cos_theta)


class Precision(Enum):
    """Numeric precision of computed arrays."""

    SINGLE = "single"
    DOUBLE = "double"

    @property
    def real_dtype(self) -> np.dtype:
        return np.dtype(np.float32 if self is Precision.SINGLE else np.float64)

    @property
    def complex_dtype(self) -> np.dtype:
        return np.dtype(np.complex64 if self is Precision.SINGLE else np.complex128)


class PinholeShape(Enum):
    """Shape of a detection pinhole."""

    DISC = "disc"
    BOX = "box"


@dataclass(frozen=True)
class Aberrations:
    """Zernike phase aberrations of the pupil.

    Attributes:
        indices: Zernike mode indices.
        coefficients: Phase amplitude of each mode in radians at the pupil.
        index_style: ``"OSA"`` (0-based ANSI) or ``"Noll"`` (1-based).

    Example:
        >>> ab = Aberrations(indices=(12,), coefficients=(0.5,))  # spherical
        >>> ab = Aberrations.from_dict({11: 0.5}, index_style="Noll")
    """

    indices: Tuple[int, ...] = ()
    coefficients: Tuple[float, ...] = ()
    index_style: str = "OSA"

    def __post_init__(self) -> None:
        object.__setattr__(self, "indices", tuple(int(j) for j in self.indices))
        object.__setattr__(
            self, "coefficients", tuple(float(c) for c in self.coefficients)
        )
        if len(self.indices) != len(self.coefficients):
            raise ConfigurationError(
                f"Got {len(self.indices)} Zernike indices but "
                f"{len(self.coefficients)} coefficients"
            )
        if self.index_style not in ("OSA", "Noll"):
            raise ConfigurationError(
                f"Unknown Zernike index style {self.index_style!r}, "
                "use 'OSA' or 'Noll'"
            )
        minimum = 1 if self.index_style == "Noll" else 0
        for j in self.indices:
            if j < minimum:
                raise ConfigurationError(
                    f"{self.index_style} index must be >= {minimum}, got {j}"
                )

    @classmethod
    def from_dict(
        cls, modes: Mapping[int, float], index_style: str = "OSA"
    ) -> "Aberrations":
        """Build aberrations from a ``{index: coefficient}`` mapping."""
        return cls(
            indices=tuple(modes.keys()),
            coefficients=tuple(modes.values()),
            index_style=index_style,
        )

    @property
    def ansi_indices(self) -> Tuple[int, ...]:
        if self.index_style == "Noll":
            return tuple(noll_to_ansi(j) for j in self.indices)
        return self.indices

    def phase(self, rho: np.ndarray, phi: np.ndarray) -> np.ndarray:
        """Weighted Zernike sum in radians at pupil coordinates (rho, phi)."""
        result = np.zeros(np.shape(rho), dtype=np.float64)
        for j, coeff in zip(self.ansi_indices, self.coefficients):
            if coeff != 0:
                result += coeff * zernike_polynomial(j, rho, phi)
        return result


@dataclass(frozen=True)
class OpticalPathParams:
    """Immutable parameters of one optical path (excitation or emission).

    All physical dimensions are in microns.

    Attributes:
        wavelength: Vacuum wavelength (μm).
        na: Numerical aperture of the objective.
        n: Refractive index of the embedding medium.
        polarization: Pupil polarization. Ignored if ``transition_dipole``
            is given.
        apodization: Aplanatic factor, ``ILLUMINATION`` for excitation
            paths and ``DETECTION`` for emission paths.
        aberrations: Optional Zernike phase aberrations.
        transition_dipole: Optional fixed emitter dipole orientation
            (x, y, z).
        precision: Numeric precision of computed arrays.
        mode: Imaging mode used by ``psf()`` when none is given.
        method: Amplitude spread function algorithm.

    Example:
        ```python
        em = OpticalPathParams(wavelength=0.52, na=1.4, n=1.52)
        ex = em.replace(wavelength=0.488, apodization=Apodization.ILLUMINATION)
        ```
    """

    wavelength: float = 0.5
    na: float = 1.2
    n: float = 1.33
    polarization: Polarization = Polarization.CIRCULAR
    apodization: Apodization = Apodization.DETECTION
    aberrations: Optional[Aberrations] = None
    transition_dipole: Optional[Tuple[float, float, float]] = None
    precision: Precision = Precision.SINGLE
    mode: Mode = Mode.WIDEFIELD
    method: Method = Method.PROPAGATE_ITERATIVE

    def __post_init__(self) -> None:
        """Validate the physical parameters."""
        if self.wavelength <= 0:
            raise ConfigurationError(
                f"Wavelength must be positive, got {self.wavelength}"
            )
        if self.n <= 0:
            raise ConfigurationError(
                f"Refractive index must be positive, got {self.n}"
            )
        if self.na <= 0:
            raise ConfigurationError(f"NA must be positive, got {self.na}")
        if self.na > self.n:
            raise ConfigurationError(
                f"NA ({self.na}) cannot exceed refractive index ({self.n})"
            )
        if self.transition_dipole is not None:
            dipole = tuple(float(v) for v in self.transition_dipole)
            if len(dipole) != 3 or not all(math.isfinite(v) for v in dipole):
                raise ConfigurationError(
                    f"Transition dipole needs three finite entries, got {dipole}"
                )
            if not any(dipole):
                raise ConfigurationError("Transition dipole cannot be zero")
            object.__setattr__(self, "transition_dipole", dipole)

    def replace(self, **changes) -> "OpticalPathParams":
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    @property
    def k0(self) -> float:
        """Wavenumber in the medium (n / wavelength) in cycles/μm."""
        return self.n / self.wavelength

    @property
    def k_cutoff(self) -> float:
        """Spatial frequency cutoff (NA / wavelength) in cycles/μm."""
        return self.na / self.wavelength

    @property
    def sin_alpha(self) -> float:
        """Sine of the aperture half-angle."""
        return self.na / self.n

    @property
    def cos_alpha(self) -> float:
        """Cosine of the aperture half-angle."""
        return math.sqrt(max(0.0, 1.0 - self.sin_alpha**2))

    @property
    def ncomp(self) -> int:
        """Number of field components (1 scalar, 3 vectorial)."""
        if self.transition_dipole is None and self.polarization is Polarization.SCALAR:
            return 1
        return 3


SamplingLike = Union[float, Sequence[float]]


@dataclass(frozen=True)
class PSFOptions:
    """Options of a PSF calculation, shared by all imaging modes.

    Pinhole sizes and spacings are in Airy units of the emission path,
    pinhole positions in lateral pixels ``(py, px)``.

    Attributes:
        sampling: Voxel size ``(dz, dy, dx)``. ``None`` selects the Nyquist
            sampling of the emission path.
        use_resampling: Compute on a 2x coarser grid and upsample. Ignored
            by 4Pi PSFs, which always use the full grid.
        return_amplitude: Widefield only, also return the amplitude.
        excitation: Excitation path parameters.
        pinhole: Pinhole diameter, scalar or ``(py, px)``.
        pinhole_shape: ``None`` picks the mode default.
        pinhole_positions: Pinhole offsets, default ``[(0, 0)]``.
        pinhole_spacing: ISM pinhole spacing, scalar or ``(py, px)``.
        pinhole_grid: ISM pinhole grid ``(rows, cols)``.
        ism_positions: ISM position generator ``f(spacing_pix, grid) ->
            (positions, diameter_pix)``; ``None`` uses ``ism_positions_rect``.
        excitation2: Second 4Pi excitation arm, defaults to ``excitation``.
        emission2: Second 4Pi emission arm, defaults to the emission path.
        two_sided_excitation: Coherent two-sided 4Pi excitation.
        two_sided_emission: Coherent two-sided 4Pi detection.
        relative_excitation_phase: Phase between 4Pi excitation arms.
        relative_emission_phase: Phase between 4Pi emission arms.
        two_photon: Square the excitation intensity.
    """

    sampling: Optional[Tuple[float, float, float]] = None
    use_resampling: bool = True
    return_amplitude: bool = False
    excitation: Optional[OpticalPathParams] = None
    pinhole: Optional[SamplingLike] = None
    pinhole_shape: Optional[PinholeShape] = None
    pinhole_positions: Optional[Sequence[Tuple[float, float]]] = None
    pinhole_spacing: SamplingLike = 0.12
    pinhole_grid: Tuple[int, int] = (5, 5)
    ism_positions: Optional[Callable] = None
    excitation2: Optional[OpticalPathParams] = None
    emission2: Optional[OpticalPathParams] = None
    two_sided_excitation: bool = True
    two_sided_emission: bool = False
    relative_excitation_phase: float = 0.0
    relative_emission_phase: float = 0.0
    two_photon: bool = False

    def replace(self, **changes) -> "PSFOptions":
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class Geometry:
    """Precomputed frequency-space geometry of a set of lateral frequencies.

    Created by make_geometry() for a centered grid, where zero frequency
    sits at index ``(ny // 2, nx // 2)``, or by geometry_at() for arbitrary
    coordinates. Shared by the pupil and the propagators.

    Attributes:
        kx: x-frequency coordinates (cycles/μm).
        ky: y-frequency coordinates (cycles/μm).
        rho: Radial coordinate normalized to the NA cutoff.
        phi: Azimuthal angle (radians).
        mask: True inside the aperture (rho <= 1).
        sin_theta: sin(θ) in the medium.
        cos_theta: cos(θ) in the medium.
        kz: Axial frequency, 0 outside the aperture.
    """

    kx: np.ndarray
    ky: np.ndarray
    rho: np.ndarray
    phi: np.ndarray
    mask: np.ndarray
    sin_theta: np.ndarray
    cos_theta: np.ndarray
    kz: np.ndarray

    @property
    def shape(self) -> Tuple[int, ...]:
        """Return the shape of the coordinate arrays, (ny, nx) for a grid."""
        return self.mask.shape


def geometry_at(
    kx: np.ndarray,
    ky: np.ndarray,
    params: OpticalPathParams,
) -> Geometry:
    """Compute the geometry of arbitrary lateral frequencies.

    Args:
        kx: Lateral x-frequencies (cycles/μm), any shape.
        ky: Lateral y-frequencies, same shape as ``kx``.
        params: Optical path parameters.

    Returns:
        Geometry with arrays of the shape of ``kx``.
    """
    kx = np.asarray(kx, dtype=np.float64)
    ky = np.asarray(ky, dtype=np.float64)

    kr = np.sqrt(kx**2 + ky**2)
    rho = kr / params.k_cutoff
    mask = rho <= 1.0
    phi = np.arctan2(ky, kx)

    # k_r = k0 * sin(θ)
    sin_theta = np.clip(kr / params.k0, 0.0, 1.0)
    cos_theta = np.sqrt(1.0 - sin_theta**2)
    kz = np.where(mask, params.k0 * cos_theta, 0.0)

    return Geometry(
        kx=kx,
        ky=ky,
        rho=rho,
        phi=phi,
        mask=mask,
        sin_theta=sin_theta,
        cos_theta=cos_theta,
        kz=kz,
    )


def make_geometry(
    shape: Tuple[int, int],
    spacing: Union[float, Tuple[float, float]],
    params: OpticalPathParams,
) -> Geometry:
    """Compute centered frequency-space geometry of a lateral grid.

    Args:
        shape: Lateral array shape as (ny, nx).
        spacing: Pixel size in μm. Either a scalar for isotropic pixels,
            or a tuple (dy, dx) for anisotropic pixels.
        params: Optical path parameters.

    Returns:
        Geometry dataclass with all precomputed quantities.

    Example:
        ```python
        geom = make_geometry((256, 256), 0.085, OpticalPathParams(na=1.4, n=1.52))
        ```
    """
    ny, nx = shape

    if isinstance(spacing, (int, float)):
        dy = dx = float(spacing)
    else:
        dy, dx = spacing

    if dy <= 0 or dx <= 0:
        raise ConfigurationError(f"Spacing must be positive, got ({dy}, {dx})")

    ky, kx = np.meshgrid(
        centered_freqs(ny, dy), centered_freqs(nx, dx), indexing="ij"
    )
    return geometry_at(kx, ky, params)
