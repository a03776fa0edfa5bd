"""M1: Version resolution — smallest symbol version for a payload, and validation of explicit versions."""

from qrstyle.capacity import (
    MAX_VERSION,
    MIN_VERSION,
    ErrorLevel,
    capacity,
    classify,
    version_capacities,
)
from qrstyle.errors import InsufficientVersion
from qrstyle.logging import audit, get_logger, trace

log = get_logger("version")


def minimum_version(text: str, error_level: ErrorLevel) -> int:
    """First version whose table capacity holds ``len(text)`` characters.

    Returns 40 when nothing fits. That is a ceiling, not a promise: the
    encoder may still reject the payload.
    """
    length = len(text)
    for version, limit in enumerate(version_capacities(error_level, classify(text)), start=MIN_VERSION):
        if length <= limit:
            return version
    return MAX_VERSION


def fits(text: str, error_level: ErrorLevel, version: int) -> bool:
    return len(text) <= capacity(error_level, classify(text), version)


@trace
def resolve_version(text: str, error_level: ErrorLevel, requested: int | None = None) -> int:
    """Version to encode with.

    Args:
        text: Payload.
        error_level: The level that will actually be encoded (after the
            logo rule has been applied).
        requested: Explicit version, or None for automatic selection.

    Raises:
        InsufficientVersion: ``requested`` is below the minimum.
        ValueError: ``requested`` is outside 1-40.
    """
    if requested is not None and not MIN_VERSION <= requested <= MAX_VERSION:
        raise ValueError(f"QR version must be between {MIN_VERSION} and {MAX_VERSION}, got {requested}")

    minimum = minimum_version(text, error_level)
    if requested is None:
        audit("version.resolved", logger=log, mode="auto", version=minimum,
              ecc=error_level.name, chars=len(text))
        return minimum

    if requested < minimum:
        audit("version.insufficient", logger=log, requested=requested,
              minimum=minimum, ecc=error_level.name, chars=len(text))
        raise InsufficientVersion(requested, minimum)

    audit("version.resolved", logger=log, mode="explicit", version=requested,
          ecc=error_level.name, chars=len(text))
    return requested
