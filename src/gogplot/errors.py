"""Error taxonomy for gogplot.

All errors derive from ValueError: each one means the caller built an invalid
table transform or plot definition. None of them are retryable.
"""

from __future__ import annotations


class GogplotError(ValueError):
    """Base class for all gogplot usage errors."""


class SchemaError(GogplotError):
    """A referenced column is not declared in the table schema."""


class TypeMismatchError(GogplotError):
    """A value kind is incompatible with a column, reducer, or aesthetic."""


class UnmappedAestheticError(GogplotError):
    """A scale was supplied for an aesthetic that no layer maps."""


class MissingAestheticError(GogplotError):
    """A layer lacks an aesthetic its geometry requires."""


class DuplicateKeyError(GogplotError):
    """A long-to-wide reshape found more than one value for a cell."""


class EmptyGroupError(GogplotError):
    """A reducer was applied to a partition with no non-missing values.

    group_aggregate() catches this and emits a missing value instead.
    """
