# %% -*- coding: utf-8 -*-
"""
Exceptions raised while building, reading, combining and sampling field records.

Everything derives from FieldDataError, so callers that only care whether an
operation worked can catch that one class.
"""

# %% Exception classes

class FieldDataError(Exception):
    """Base class for field record failures. Carries the file involved, if any."""

    def __init__(self, message: str, filename: str | None = None):
        super().__init__(message)
        self.filename = filename

    def __str__(self):
        # Not super().__str__(): OSError formats its own errno and filename slots
        message = str(self.args[0]) if self.args else ''
        if self.filename:
            return f"{message} (file '{self.filename}')"
        return message


class FieldIOError(FieldDataError, OSError):
    """Opening, reading or writing a file failed, or a file was truncated."""


class StructuralError(FieldDataError):
    """Shape, dimension, kind or naming-convention violation."""


class AllocationError(FieldDataError, MemoryError):
    """The payload for a record could not be allocated."""


class CompatibilityError(FieldDataError):
    """
    Two records cannot be combined, either for a merge or because a child does
    not fit inside its parent. `axis` names the quantity that failed.
    """

    def __init__(self, message: str, axis: str | None = None, filename: str | None = None):
        super().__init__(message, filename)
        self.axis = axis


class FieldRangeError(FieldDataError, ValueError):
    """A query point, or an index derived from it, is outside the grid."""

    def __init__(self, message: str, point=None, axis: str | None = None):
        super().__init__(message)
        self.point = point
        self.axis = axis


class CapacityError(FieldDataError):
    """A record already holds the maximum number of children."""
