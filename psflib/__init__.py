"""psflib - Point spread functions of optical microscopes.

A library for computing amplitude and intensity point spread functions
(PSF) of widefield, confocal, image scanning (ISM), two-photon and 4Pi
microscopes, with vectorial high-aperture pupils, apodization and Zernike
aberrations.

The library is organized into two modules:

- **psf**: NumPy/SciPy-based pupil construction, amplitude propagation
  methods and imaging-mode composition
- **utils**: Shared mathematical utilities (Fourier, Zernike, regions)

Example:
    >>> import psflib
    >>>
    >>> # Emission path: 520nm, 1.4 NA oil objective
    >>> em = psflib.OpticalPathParams(wavelength=0.52, na=1.4, n=1.52)
    >>>
    >>> # Widefield PSF at 100nm axial, 50nm lateral sampling
    >>> p = psflib.psf((64, 128, 128), em, sampling=(0.1, 0.05, 0.05))
    >>>
    >>> # Confocal PSF with a 1 AU pinhole
    >>> ex = em.replace(wavelength=0.488,
    ...                 apodization=psflib.Apodization.ILLUMINATION)
    >>> p_conf = psflib.psf((64, 128, 128), em, mode=psflib.Mode.CONFOCAL,
    ...                     excitation=ex, pinhole=1.0)

Reference:
    Richards, B. & Wolf, E. (1959), "Electromagnetic diffraction in optical
    systems II", Proc. R. Soc. A 253: 358-379
"""

import logging

__version__ = "0.1.0"

# =============================================================================
# Errors
# =============================================================================
from .errors import (
    ConfigurationError,
    UnsupportedRequestError,
    PhysicalConstraintWarning,
)

# =============================================================================
# PSF Module - Parameters, pupils, propagation and imaging modes
# =============================================================================
from .psf import (
    # Core data structures
    Mode,
    Method,
    Polarization,
    Apodization,
    Precision,
    PinholeShape,
    Aberrations,
    OpticalPathParams,
    PSFOptions,
    Geometry,
    geometry_at,
    make_geometry,
    # Pupil functions
    pupil_field,
    pupil_xyz,
    # Sampling limits
    get_abbe_limit,
    get_nyquist_limit,
    get_sampling,
    check_amp_sampling,
    kz_mid_pos,
    airy_unit,
    au_per_pixel,
    four_pi_nyquist,
    # Amplitude spread functions
    apsf,
    apsf_propagate,
    apsf_propagate_iterative,
    apsf_shell,
    apsf_sinc_r,
    apsf_richards_wolf,
    calc_with_resampling,
    # Intensities and modes
    amp_to_int,
    PinholeSpec,
    disc_pinhole_ft,
    box_pinhole_ft,
    pinhole_au_to_pix,
    confocal_int,
    ism_positions_rect,
    psf_widefield,
    psf_confocal,
    psf_ism,
    psf_two_photon,
    psf_4pi,
    psf,
)

# =============================================================================
# Utils Module - Mathematical utilities
# =============================================================================
from .utils import (
    centered_coords,
    centered_freqs,
    ift2d,
    fourier_resample,
    zernike_polynomial,
    ansi_to_nm,
    noll_to_nm,
    noll_to_ansi,
    select_region,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Version
    "__version__",
    # Errors
    "ConfigurationError",
    "UnsupportedRequestError",
    "PhysicalConstraintWarning",
    # Core data structures
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
    # Pupil functions
    "pupil_field",
    "pupil_xyz",
    # Sampling limits
    "get_abbe_limit",
    "get_nyquist_limit",
    "get_sampling",
    "check_amp_sampling",
    "kz_mid_pos",
    "airy_unit",
    "au_per_pixel",
    "four_pi_nyquist",
    # Amplitude spread functions
    "apsf",
    "apsf_propagate",
    "apsf_propagate_iterative",
    "apsf_shell",
    "apsf_sinc_r",
    "apsf_richards_wolf",
    "calc_with_resampling",
    # Intensities and modes
    "amp_to_int",
    "PinholeSpec",
    "disc_pinhole_ft",
    "box_pinhole_ft",
    "pinhole_au_to_pix",
    "confocal_int",
    "ism_positions_rect",
    "psf_widefield",
    "psf_confocal",
    "psf_ism",
    "psf_two_photon",
    "psf_4pi",
    "psf",
    # Utilities
    "centered_coords",
    "centered_freqs",
    "ift2d",
    "fourier_resample",
    "zernike_polynomial",
    "ansi_to_nm",
    "noll_to_nm",
    "noll_to_ansi",
    "select_region",
]
