from __future__ import annotations


class TryOnError(RuntimeError):
    """Base class for every user-visible try-on failure."""


class DecodeError(TryOnError):
    """The selected file could not be read as binary data."""


class FormatError(TryOnError):
    """The binary data could not be decoded as an image."""


class ValidationError(TryOnError):
    """Required inputs were missing when generation was triggered."""


class GenerationError(TryOnError):
    """The external generation service rejected the request or failed."""
