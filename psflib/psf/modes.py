"""Imaging modes built on the widefield and confocal calculations.

ISM, two-photon and 4Pi PSFs, plus the ``psf`` entry point that selects
the mode.
"""

import logging
import warnings
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import (
    ConfigurationError,
    PhysicalConstraintWarning,
    UnsupportedRequestError,
)
from .confocal import (
    PinholeSpec,
    _as_pair,
    confocal_int,
    pinhole_au_to_pix,
    psf_confocal,
)
from .params import Mode, OpticalPathParams, PinholeShape, PSFOptions
from .propagation import apsf
from .sampling import (
    au_per_pixel,
    four_pi_nyquist,
    resolve_sampling,
    resolve_shape,
)
from .widefield import amp_to_int, psf_widefield

__all__ = [
    "ism_positions_rect",
    "psf_ism",
    "psf_two_photon",
    "psf_4pi",
    "psf",
]

_log = logging.getLogger(__name__)

PSFResult = Union[np.ndarray, Tuple[np.ndarray, np.ndarray], List[np.ndarray]]


def ism_positions_rect(
    spacing: Union[float, Sequence[float]],
    grid: Tuple[int, int],
) -> Tuple[List[Tuple[float, float]], Tuple[float, float]]:
    """Rectangular grid of ISM pinhole positions centered on the axis.

    Args:
        spacing: Pinhole pitch in pixels, scalar or (py, px).
        grid: Number of pinholes (rows, cols).

    Returns:
        Tuple ``(positions, diameter)``: row-major ``(py, px)`` offsets and
        the pinhole diameter in pixels, equal to the pitch so that
        neighbouring pinholes touch.

    Example:
        >>> positions, diameter = ism_positions_rect(2.0, (3, 3))
        >>> positions[4]
        (0.0, 0.0)
    """
    s_y, s_x = _as_pair(spacing)
    rows, cols = grid
    positions = [
        (s_y * (i - (rows + 1) / 2), s_x * (j - (cols + 1) / 2))
        for i in range(1, rows + 1)
        for j in range(1, cols + 1)
    ]
    return positions, (s_y, s_x)


def psf_ism(
    shape: Sequence[int],
    params: OpticalPathParams,
    options: Optional[PSFOptions] = None,
) -> Union[np.ndarray, List[np.ndarray]]:
    """Compute the PSFs of all detector elements of an ISM system.

    Unless ``options.pinhole_positions`` is given, the positions come from
    ``options.ism_positions`` (default ``ism_positions_rect``) with a pitch
    of ``options.pinhole_spacing`` AU. The pinhole defaults to the pitch
    and to a box shape.

    Args:
        shape: Grid shape (nz, ny, nx).
        params: Emission path parameters.
        options: Calculation options; ``excitation`` is required.

    Returns:
        List of PSFs, one per pinhole position (an array if there is only
        one).

    Example:
        >>> opts = PSFOptions(excitation=ex, pinhole_spacing=0.2)
        >>> psfs = psf_ism((64, 128, 128), em, opts)
        >>> len(psfs)
        25
    """
    if options is None:
        options = PSFOptions()
    shape = resolve_shape(shape)
    sampling = resolve_sampling(options.sampling, params)

    pinhole = options.pinhole
    positions = options.pinhole_positions
    if not positions:
        au_pix = au_per_pixel(params, sampling)
        spacing_pix = tuple(
            s * a for s, a in zip(_as_pair(options.pinhole_spacing), au_pix)
        )
        generator = options.ism_positions or ism_positions_rect
        positions, diameter_pix = generator(spacing_pix, options.pinhole_grid)
        diameter_au = tuple(d / a for d, a in zip(_as_pair(diameter_pix), au_pix))
        if pinhole is None:
            pinhole = diameter_au
        elif any(p > d * (1 + 1e-9) for p, d in zip(_as_pair(pinhole), diameter_au)):
            warnings.warn(
                f"Pinhole {pinhole} AU is larger than the pinhole spacing "
                f"{diameter_au} AU, neighbouring pinholes overlap.",
                PhysicalConstraintWarning,
                stacklevel=2,
            )
        _log.debug("ISM with %d pinholes of %s AU", len(positions), pinhole)

    return psf_confocal(
        shape,
        params,
        options.replace(
            sampling=sampling,
            pinhole=pinhole,
            pinhole_positions=list(positions),
            pinhole_shape=options.pinhole_shape or PinholeShape.BOX,
        ),
    )


def psf_two_photon(
    shape: Sequence[int],
    params: OpticalPathParams,
    options: Optional[PSFOptions] = None,
) -> Union[np.ndarray, List[np.ndarray]]:
    """Compute a two-photon PSF.

    Without a pinhole, non-descanned detection is assumed and the PSF is
    the squared widefield excitation PSF. ``options.excitation`` is used
    as excitation path if given, otherwise ``params``. With a pinhole the
    calculation is confocal with a squared excitation, ``params`` is the
    emission path and ``options.excitation`` is required.

    Args:
        shape: Grid shape (nz, ny, nx).
        params: Excitation path (no pinhole) or emission path (pinhole).
        options: Calculation options.

    Returns:
        PSF of shape (nz, ny, nx), or a list for several pinhole positions.

    Example:
        >>> ex = OpticalPathParams(wavelength=0.8, na=1.4, n=1.52,
        ...                        apodization=Apodization.ILLUMINATION)
        >>> psf = psf_two_photon((64, 128, 128), ex)
    """
    if options is None:
        options = PSFOptions()
    if options.return_amplitude:
        raise UnsupportedRequestError(
            "A two-photon PSF has no amplitude spread function, "
            "use return_amplitude=False"
        )

    if options.pinhole is None:
        excitation = options.excitation or params
        wf_options = PSFOptions(
            sampling=options.sampling, use_resampling=options.use_resampling
        )
        return psf_widefield(shape, excitation, wf_options) ** 2

    if options.excitation is None:
        raise ConfigurationError(
            "Two-photon calculation with a pinhole needs excitation "
            "parameters (options.excitation)"
        )
    return psf_confocal(shape, params, options.replace(two_photon=True))


def _arm_intensity(shape, first, second, sampling, two_sided, phase):
    """Intensity of one 4Pi path, coherent over both objectives if two-sided."""
    amp = apsf(shape, first, sampling=sampling)
    if not two_sided:
        return amp_to_int(amp)
    amp2 = amp if second == first else apsf(shape, second, sampling=sampling)
    return amp_to_int(amp + np.exp(1j * phase) * np.conj(amp2))


def psf_4pi(
    shape: Sequence[int],
    params: OpticalPathParams,
    options: Optional[PSFOptions] = None,
) -> Union[np.ndarray, List[np.ndarray]]:
    """Compute a 4Pi PSF.

    Two opposing objectives focus into the sample. A two-sided path adds
    the amplitude of the second objective coherently as its mirror image
    ``exp(iφ) conj(A2)``; a single-sided path is the usual intensity.
    Type A microscopes have two-sided excitation only, type C both.

    Args:
        shape: Grid shape (nz, ny, nx).
        params: Emission path parameters.
        options: Calculation options. ``excitation`` is required;
            ``excitation2``, ``emission2``, ``two_sided_excitation``,
            ``two_sided_emission``, the relative phases, ``pinhole`` (may
            be None for an open pinhole) and ``two_photon`` are used. The
            full grid is always used, ``use_resampling`` has no effect.

    Returns:
        PSF of shape (nz, ny, nx), or a list for several pinhole positions.

    Raises:
        ConfigurationError: If the excitation is missing.
        UnsupportedRequestError: If an amplitude is requested.

    Example:
        >>> opts = PSFOptions(excitation=ex, pinhole=1.0, two_sided_emission=True)
        >>> psf = psf_4pi((128, 128, 128), em, opts)
    """
    if options is None:
        options = PSFOptions()
    excitation = options.excitation
    if excitation is None:
        raise ConfigurationError(
            "4Pi calculation needs excitation parameters (options.excitation)"
        )
    if options.return_amplitude:
        raise UnsupportedRequestError(
            "A 4Pi PSF has no amplitude spread function, use return_amplitude=False"
        )
    if options.use_resampling:
        _log.debug("4Pi PSFs are computed on the full grid, use_resampling ignored")
    shape = resolve_shape(shape)

    nyquist = four_pi_nyquist(excitation, params, options.two_photon)
    if options.sampling is None:
        sampling = nyquist
        _log.info("4Pi sampling set to %s", sampling)
    else:
        sampling = resolve_sampling(options.sampling, params)
        if sampling[0] > nyquist[0]:
            warnings.warn(
                f"The 4Pi PSF needs an axial sampling of at least {nyquist[0]:.4g}, "
                f"got {sampling[0]}",
                PhysicalConstraintWarning,
                stacklevel=2,
            )

    psf_ex = _arm_intensity(
        shape,
        excitation,
        options.excitation2 or excitation,
        sampling,
        options.two_sided_excitation,
        options.relative_excitation_phase,
    )
    psf_em = _arm_intensity(
        shape,
        params,
        options.emission2 or params,
        sampling,
        options.two_sided_emission,
        options.relative_emission_phase,
    )

    positions = options.pinhole_positions or [(0.0, 0.0)]
    pinhole = PinholeSpec(
        diameter=pinhole_au_to_pix(shape, params, sampling, options.pinhole),
        shape=options.pinhole_shape or PinholeShape.DISC,
        positions=tuple((float(p[0]), float(p[1])) for p in positions),
    )
    return confocal_int(psf_ex, psf_em, pinhole, two_photon=options.two_photon)


_MODES: Dict[Mode, Callable[..., PSFResult]] = {
    Mode.WIDEFIELD: psf_widefield,
    Mode.CONFOCAL: psf_confocal,
    Mode.ISM: psf_ism,
    Mode.TWO_PHOTON: psf_two_photon,
    Mode.FOUR_PI: psf_4pi,
}


def psf(
    shape: Sequence[int],
    params: OpticalPathParams,
    options: Optional[PSFOptions] = None,
    mode: Optional[Mode] = None,
    **overrides,
) -> PSFResult:
    """Compute the PSF of any imaging mode.

    Args:
        shape: Grid shape (nz, ny, nx).
        params: Parameters of the primary path (emission for the detection
            modes, excitation for non-descanned two-photon).
        options: Calculation options.
        mode: Imaging mode, ``params.mode`` if None.
        **overrides: Fields replaced in ``options``.

    Returns:
        The mode's result: an intensity, ``(intensity, amplitude)`` for
        widefield with ``return_amplitude``, or a list of intensities for
        several pinhole positions.

    Raises:
        ConfigurationError: For unknown modes or option names.

    Example:
        >>> p = psf((64, 128, 128), OpticalPathParams(), sampling=(0.1, 0.05, 0.05))
        >>> p_conf = psf((64, 128, 128), em, mode=Mode.CONFOCAL,
        ...              excitation=ex, pinhole=1.0)
    """
    if options is None:
        options = PSFOptions()
    if overrides:
        try:
            options = options.replace(**overrides)
        except TypeError as err:
            raise ConfigurationError(f"Invalid PSF option: {err}") from None

    if mode is None:
        mode = params.mode
    try:
        fct = _MODES[Mode(mode)]
    except (ValueError, KeyError):
        raise ConfigurationError(f"Unknown imaging mode: {mode!r}") from None

    _log.debug("PSF mode %s for shape %s", Mode(mode).value, tuple(shape))
    return fct(shape, params, options)
