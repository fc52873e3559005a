"""Exceptions and warnings raised by psflib."""

__all__ = [
    "ConfigurationError",
    "UnsupportedRequestError",
    "PhysicalConstraintWarning",
]


class ConfigurationError(ValueError):
    """Raised when a required parameter is missing or invalid.

    Raised before any numerical work is done. The call has to be fixed by
    the caller; retrying with the same arguments fails again.
    """

    pass


class UnsupportedRequestError(ValueError):
    """Raised when a request is physically undefined.

    Example: asking a confocal calculation to return an amplitude spread
    function, which does not exist for a finite pinhole.
    """

    pass


class PhysicalConstraintWarning(UserWarning):
    """Non-fatal violation of a physical limit.

    Issued for undersampled grids, pinholes larger than the field of view
    or larger than the ISM pinhole spacing. The computation continues with
    a documented fallback.
    """

    pass
