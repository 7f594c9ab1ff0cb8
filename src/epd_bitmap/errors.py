"""Exceptions raised while converting images to display bitmaps."""


class ConversionError(Exception):
    """Base exception for conversion errors."""


class DecodeError(ConversionError):
    """Raised when a source image or bitmap cannot be read."""


class DimensionError(ConversionError):
    """Raised when a source is neither the target size nor exactly double it."""


class EncodingInvariantError(ConversionError):
    """Raised when an encoded bitmap would not match the firmware's layout."""
