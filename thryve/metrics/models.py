# -*- coding: utf-8 -*-
"""Metrics: Pydantic models."""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

MetricType = Literal["blood_pressure", "heart_rate", "temperature", "weight", "sleep"]


def _value_to_text(v: Union[str, int, float]) -> str:
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    text = str(v).strip()
    if not text:
        raise ValueError("value must not be empty")
    return text


class MetricCreateRequest(BaseModel):
    metric_type: MetricType
    # Numbers and compound readings such as "120/80" are both accepted; stored as text.
    value: Union[str, int, float]
    unit: str = Field(..., min_length=1, max_length=32)
    notes: Optional[str] = Field(default=None, max_length=1000)
    recorded_at: Optional[str] = None

    @field_validator("value")
    @classmethod
    def _normalize_value(cls, v: Union[str, int, float]) -> str:
        return _value_to_text(v)


class MetricUpdateRequest(BaseModel):
    value: Optional[Union[str, int, float]] = None
    unit: Optional[str] = Field(default=None, min_length=1, max_length=32)
    notes: Optional[str] = Field(default=None, max_length=1000)
    recorded_at: Optional[str] = None

    @field_validator("value")
    @classmethod
    def _normalize_value(cls, v: Optional[Union[str, int, float]]) -> Optional[str]:
        return None if v is None else _value_to_text(v)


class Metric(BaseModel):
    id: str
    owner_id: str
    metric_type: MetricType
    value: str
    unit: str
    notes: Optional[str] = None
    recorded_at: str
    created_at: str


class MetricListResponse(BaseModel):
    count: int
    items: list[Metric]
