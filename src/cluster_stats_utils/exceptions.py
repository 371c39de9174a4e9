"""
Exception types raised by the cluster statistics utilities.

All errors signal violated preconditions on the input data; they are raised
before any work is done and are never recovered from internally.
"""


class ClusterStatsError(Exception):
    """Base class for all errors raised by this package."""


class InvalidInput(ClusterStatsError, ValueError):
    """Raised for degenerate or non-numeric matrices and invalid thresholds."""


class SchemaError(ClusterStatsError, ValueError):
    """Raised when a results table lacks a required column."""


class ShapeError(ClusterStatsError, ValueError):
    """Raised when cluster identifiers differ across comparisons."""
