"""Exception types raised while building scenes.

Both types derive from the built-in exceptions that the rest of the package
raises for the same situations, so callers catching ``ValueError`` or
``RuntimeError`` keep working.
"""


class GeometryError(ValueError):
    """A primitive was constructed with an invalid parameter.

    Raised immediately at construction time (zero radius, inverted rectangle
    bounds, non-positive medium density, ...). Values are never clamped.
    """


class BoundingBoxError(RuntimeError):
    """An entity could not report a bounding box where one is required.

    The bounding-volume hierarchy can only be built over entities that all
    have a box; an empty aggregate is the usual culprit.
    """
