from __future__ import annotations


class ChartError(Exception):
    """Base class for livechart errors."""


class ChartDataError(ChartError, ValueError):
    """Raised when a series container cannot be read at all."""


class ChartInvariantError(ChartError, RuntimeError):
    """Raised when reconciliation would produce corrupt geometry."""
