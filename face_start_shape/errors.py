class StartShapeError(Exception):
    """Base class for errors raised while building a pinned start shape."""


class InsufficientConstraints(StartShapeError, ValueError):
    """Too few usable pinned landmarks to place the mean shape."""


class MissingRequiredLandmark(StartShapeError, AssertionError):
    """A landmark needed to synthesize detector parameters is unset."""


class InvalidRotationRange(StartShapeError, ValueError):
    """Rotation angle outside the range accepted by the rotation primitive."""
