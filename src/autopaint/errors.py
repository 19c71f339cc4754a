"""
Error taxonomy for autopaint.

Only InvalidConfiguration ever escapes a job. The geometry errors are raised
where a path is examined and caught where it is consumed, so the path can be
dropped or completed without leaving the layers half-mutated.
"""


class AutoPaintError(Exception):
    """Base class for all autopaint errors."""


class InvalidConfiguration(AutoPaintError):
    """Settings or palette cannot be used; the job is rejected before it starts."""


class DegenerateGeometry(AutoPaintError):
    """A path has no usable length or area."""


class IncompleteFillCoverage(AutoPaintError):
    """A fill strategy ran out of material before covering the whole path."""
