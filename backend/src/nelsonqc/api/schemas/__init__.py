"""Pydantic schemas for the nelsonqc API."""

from .series import (
    AnnotatedPointResponse,
    AnnotatedSeriesResponse,
    DataUpdateResponse,
    HealthResponse,
    RuleResponse,
    SampleIn,
    SampleOut,
    StatisticsResponse,
    finite_or_none,
    samples_payload,
    to_series,
)

__all__ = [
    "AnnotatedPointResponse",
    "AnnotatedSeriesResponse",
    "DataUpdateResponse",
    "HealthResponse",
    "RuleResponse",
    "SampleIn",
    "SampleOut",
    "StatisticsResponse",
    "finite_or_none",
    "samples_payload",
    "to_series",
]
