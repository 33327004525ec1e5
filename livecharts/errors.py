"""Exception hierarchy for chart merging."""
from __future__ import annotations


class ChartError(Exception):
    """Base class for errors raised while maintaining chart state."""


class MalformedPayload(ChartError):
    """Inbound payload could not be parsed into the expected shape."""


class UnknownInstance(ChartError):
    """Incremental payload references a chart that was never initialised."""

    def __init__(self, chart_id: str) -> None:
        super().__init__(f"Chart instance '{chart_id}' has not received a bulk payload")
        self.chart_id = chart_id


class TimestampMismatch(ChartError, ValueError):
    """Timestamp type differs from the points already stored in a series."""
