"""
Application DTOs - Special Events and Accuracy

Data Transfer Objects for special event management and forecast
accuracy reporting.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.domain.entities.demand import (
    ForecastAccuracyMetrics,
    PredictionTimeframe,
    SpecialEvent,
)


class CreateSpecialEventRequestDTO(BaseModel):
    """Payload used to register a special event."""

    name: str = Field(description="Human readable event name")
    event_type: str = Field(description="Event category (concert, sports...)")
    latitude: float
    longitude: float
    start_time: str = Field(description="Event start (RFC 3339 timestamp)")
    end_time: str = Field(description="Event end (RFC 3339 timestamp)")
    expected_attendees: int = Field(default=0, ge=0)
    impact_radius_km: Optional[float] = Field(
        default=None, description="Radius of influence; defaults to 5 km"
    )
    is_recurring: bool = False


class SpecialEventDTO(BaseModel):
    id: UUID
    name: str
    event_type: str
    latitude: float
    longitude: float
    h3_index: str
    start_time: datetime
    end_time: datetime
    expected_attendees: int
    impact_radius_km: float
    demand_multiplier: float
    is_recurring: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, event: SpecialEvent) -> "SpecialEventDTO":
        return cls(
            id=event.id,
            name=event.name,
            event_type=event.event_type,
            latitude=event.latitude,
            longitude=event.longitude,
            h3_index=event.h3_index,
            start_time=event.start_time,
            end_time=event.end_time,
            expected_attendees=event.expected_attendees,
            impact_radius_km=event.impact_radius_km,
            demand_multiplier=event.demand_multiplier,
            is_recurring=event.is_recurring,
            created_at=event.created_at,
            updated_at=event.updated_at,
        )


class SpecialEventListDTO(BaseModel):
    events: List[SpecialEventDTO] = Field(default_factory=list)


class ForecastAccuracyDTO(BaseModel):
    """Aggregate accuracy of evaluated predictions."""

    timeframe: PredictionTimeframe
    mae: float
    rmse: float
    mape: float
    samples_evaluated: int
    evaluation_period: str
    updated_at: datetime

    @classmethod
    def from_domain(cls, metrics: ForecastAccuracyMetrics) -> "ForecastAccuracyDTO":
        return cls(
            timeframe=metrics.timeframe,
            mae=metrics.mae,
            rmse=metrics.rmse,
            mape=metrics.mape,
            samples_evaluated=metrics.samples_evaluated,
            evaluation_period=metrics.evaluation_period,
            updated_at=metrics.updated_at,
        )
