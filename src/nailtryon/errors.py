from __future__ import annotations


class TryOnError(RuntimeError):
    """Base class for failures the try-on engine recovers from locally."""


class LandmarkUnavailable(TryOnError):
    """No hand was detected in the frame."""


class ImageDecodeFailure(TryOnError):
    """A hand photo or nail design could not be decoded."""


class InvalidTransform(TryOnError, ValueError):
    """A transform with non-finite or non-positive components."""


class SurfaceDisposed(TryOnError):
    """The render surface was used after dispose()."""
