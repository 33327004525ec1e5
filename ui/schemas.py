"""Pydantic models for UI API responses."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class SeriesPoint(BaseModel):
    timestamp: Union[int, float, str] = Field(..., description="Epoch milliseconds or ISO-8601 instant")
    value: Optional[Union[bool, int, float]] = Field(None, description="Numeric value (NaN represented as null)")


class SeriesPayload(BaseModel):
    name: str
    label: str = ""
    kind: str = "continuous"
    unit: str = ""
    axis: str = ""
    color: Optional[str] = None
    data: List[SeriesPoint] = Field(default_factory=list)


class SeriesResponse(BaseModel):
    id: str
    title: str = ""
    variant: str = ""
    revision: int = 0
    series: List[SeriesPayload]
    meta: dict = Field(default_factory=dict)


class ChartSummary(BaseModel):
    id: str
    title: str
    variant: str
    points: Dict[str, int] = Field(default_factory=dict)


class UpdateResponse(BaseModel):
    chart_id: str
    appended: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    continued: List[str] = Field(default_factory=list)
    revision: int = 0


class ErrorResponse(BaseModel):
    error: str
    kind: str = "malformed"
    detail: Optional[Any] = None
