"""
Exceptions raised by voxnet.

Every error is raised where the violation is detected and propagates to
the caller unchanged; nothing in the package retries or logs them.
"""


class VoxnetError(Exception):
    """Base class for all voxnet errors."""


class DimensionMismatch(VoxnetError, ValueError):
    """A parameter or input vector length disagrees with the declared topology."""

    def __init__(self, what: str, expected: int, found: int):
        self.what = what
        self.expected = expected
        self.found = found
        super().__init__(f"Wrong number of {what}: {expected} expected, {found} found")


class InvalidConfiguration(VoxnetError, ValueError):
    """A component was constructed with values it cannot work with."""


def check_length(what: str, values, expected: int) -> None:
    """Raise DimensionMismatch unless len(values) == expected."""
    found = len(values)
    if found != expected:
        raise DimensionMismatch(what, expected, found)
