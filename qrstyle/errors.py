"""Error taxonomy for the render pipeline."""


class QRStyleError(Exception):
    """Base class for all qrstyle failures."""


class InsufficientVersion(QRStyleError, ValueError):
    """A requested symbol version is too small for the payload.

    Carries both values so callers can offer to switch to ``minimum_required``.
    """

    def __init__(self, requested: int, minimum_required: int):
        self.requested = requested
        self.minimum_required = minimum_required
        super().__init__(
            f"The chosen QR Code version ({requested}) cannot contain this amount of data. "
            f"Minimum version required: {minimum_required}"
        )

    def __reduce__(self):
        return type(self), (self.requested, self.minimum_required)


class EncodeError(QRStyleError):
    """The symbol encoder could not produce a raster."""


class DecodeError(QRStyleError):
    """An image payload (base symbol or logo) could not be decoded."""


class CompositingError(QRStyleError):
    """The style compositor could not paint the restyled surface."""
