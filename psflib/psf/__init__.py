"""PSF computation module for optical microscopy.

This module computes amplitude and intensity point spread functions of
widefield, confocal, ISM, two-photon and 4Pi microscopes from the physical
parameters of their optical paths.

Example:
    >>> from psflib.psf import OpticalPathParams, PSFOptions, Apodization, Mode, psf
    >>>
    >>> em = OpticalPathParams(wavelength=0.52, na=1.4, n=1.52)
    >>> ex = em.replace(wavelength=0.488, apodization=Apodization.ILLUMINATION)
    >>> p_wf = psf((64, 128, 128), em)
    >>> p_conf = psf((64, 128, 128), em, PSFOptions(excitation=ex, pinhole=1.0),
    ...              mode=Mode.CONFOCAL)
"""

# Core data structures
from .params import (
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
)

# Pupil functions
from .pupil import (
    pupil_field,
    pupil_xyz,
    compute_vectorial_factors,
)

# Sampling limits
from .sampling import (
    get_abbe_limit,
    get_nyquist_limit,
    get_sampling,
    resolve_shape,
    resolve_sampling,
    check_amp_sampling,
    kz_mid_pos,
    airy_unit,
    au_per_pixel,
    four_pi_nyquist,
)

# Amplitude spread functions
from .propagation import (
    apsf,
    apsf_propagate,
    apsf_propagate_iterative,
    apsf_shell,
    apsf_sinc_r,
    apsf_richards_wolf,
)
from .resampling import (
    calc_with_resampling,
    normalize_focal_plane,
)

# Widefield and confocal PSFs
from .widefield import (
    amp_to_int,
    psf_widefield,
)
from .confocal import (
    PinholeSpec,
    disc_pinhole_ft,
    box_pinhole_ft,
    pinhole_au_to_pix,
    confocal_int,
    psf_confocal,
)

# ISM, two-photon, 4Pi and dispatch
from .modes import (
    ism_positions_rect,
    psf_ism,
    psf_two_photon,
    psf_4pi,
    psf,
)

__all__ = [
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
    "compute_vectorial_factors",
    # Sampling limits
    "get_abbe_limit",
    "get_nyquist_limit",
    "get_sampling",
    "resolve_shape",
    "resolve_sampling",
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
    "normalize_focal_plane",
    # Widefield and confocal PSFs
    "amp_to_int",
    "psf_widefield",
    "PinholeSpec",
    "disc_pinhole_ft",
    "box_pinhole_ft",
    "pinhole_au_to_pix",
    "confocal_int",
    "psf_confocal",
    # ISM, two-photon, 4Pi and dispatch
    "ism_positions_rect",
    "psf_ism",
    "psf_two_photon",
    "psf_4pi",
    "psf",
]
