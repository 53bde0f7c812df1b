"""Exception hierarchy for the forcing pipeline."""


class SpongeTideError(Exception):
    """Base class for all spongetide errors."""


class ConfigurationError(SpongeTideError, ValueError):
    """Inputs are missing or inconsistent; the whole run must stop."""


class DataUnavailableError(SpongeTideError, LookupError):
    """A constituent or variable is not present in the atlas.

    Raised per constituent; the assembler drops the constituent and carries on.
    """


class InterpolationDomainError(SpongeTideError, ValueError):
    """Not enough source samples to build an interpolant."""
