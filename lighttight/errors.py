from __future__ import annotations


class LighttightError(Exception):
    """Base class for every error the tool reports to the user."""


class InputNotFound(LighttightError):
    pass


class MalformedStructure(LighttightError):
    pass


class StructureWriteError(LighttightError):
    pass


class OriginNotFound(LighttightError):
    pass


class OutOfBoundsAccess(LighttightError):
    """A position fell outside the box a grid was sized for.

    The padded box is derived from the region's own bounds, so this always
    points at a bug rather than at bad input.
    """


class ConfigError(LighttightError):
    pass


class TraversalBudgetExceeded(LighttightError):
    pass
