"""
Domain Entities - Demand

This module defines the core domain entities of the demand forecasting
engine: historical observations, special events, persisted predictions
and the read models derived from them (hotspots, heatmaps and driver
repositioning recommendations).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4


class PredictionTimeframe(str, Enum):
    """Forecast horizon for which a prediction target time is computed."""

    MIN_15 = "15min"
    MIN_30 = "30min"
    HOUR_1 = "1hour"
    HOUR_2 = "2hour"
    HOUR_4 = "4hour"

    @property
    def duration(self) -> timedelta:
        return _TIMEFRAME_DURATIONS[self]


_TIMEFRAME_DURATIONS = {
    PredictionTimeframe.MIN_15: timedelta(minutes=15),
    PredictionTimeframe.MIN_30: timedelta(minutes=30),
    PredictionTimeframe.HOUR_1: timedelta(hours=1),
    PredictionTimeframe.HOUR_2: timedelta(hours=2),
    PredictionTimeframe.HOUR_4: timedelta(hours=4),
}


class DemandLevel(str, Enum):
    """Six-bucket classification of predicted demand against its baseline."""

    VERY_LOW = "very_low"
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    VERY_HIGH = "very_high"
    EXTREME = "extreme"

    @property
    def rank(self) -> int:
        """Ordinal position of the level, lowest demand first."""
        return list(DemandLevel).index(self)

    def at_least(self, other: "DemandLevel") -> bool:
        return self.rank >= other.rank


@dataclass(frozen=True)
class HistoricalDemandRecord:
    """Immutable demand observation for one cell and 15-minute bucket."""

    h3_index: str
    timestamp: datetime
    hour: int
    day_of_week: int
    is_holiday: bool = False
    ride_requests: int = 0
    completed_rides: int = 0
    available_drivers: int = 0
    avg_wait_time_min: float = 0.0
    surge_multiplier: float = 1.0
    weather_condition: str = "unknown"
    temperature: Optional[float] = None
    precipitation_mm: Optional[float] = None
    special_event_type: Optional[str] = None
    special_event_scale: Optional[int] = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class SpecialEvent:
    """Event (concert, match, conference...) expected to affect demand."""

    name: str
    event_type: str
    latitude: float
    longitude: float
    h3_index: str
    start_time: datetime
    end_time: datetime
    expected_attendees: int = 0
    impact_radius_km: float = 5.0
    demand_multiplier: float = 1.0
    is_recurring: bool = False
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def is_active_between(self, start: datetime, end: datetime) -> bool:
        return self.start_time <= end and self.end_time >= start


@dataclass(frozen=True)
class FeatureContributions:
    """Breakdown reported with every prediction.

    The values mirror the configured model weights and are not a per-call
    attribution of the predicted value.
    """

    historical_pattern: float
    recent_trend: float
    time_of_day: float
    day_of_week: float
    weather: float
    special_events: float
    seasonal_trend: float


@dataclass
class DemandPrediction:
    """Persisted forecast for one cell, target time and timeframe."""

    h3_index: str
    prediction_time: datetime
    timeframe: PredictionTimeframe
    predicted_rides: float
    demand_level: DemandLevel
    confidence: float
    recommended_drivers: int
    expected_surge: float
    hotspot_score: float
    reposition_priority: int
    feature_contributions: FeatureContributions
    lower_bound: float = 0.0
    upper_bound: float = 0.0
    actual_rides: Optional[int] = None
    id: UUID = field(default_factory=uuid4)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class ForecastAccuracyMetrics:
    """Aggregate accuracy of past predictions for a timeframe."""

    timeframe: PredictionTimeframe
    mae: float
    rmse: float
    mape: float
    samples_evaluated: int
    evaluation_period: str
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class BoundingBox:
    """Geographic rectangle expressed in decimal degrees."""

    min_latitude: float
    min_longitude: float
    max_latitude: float
    max_longitude: float

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.min_latitude <= latitude <= self.max_latitude
            and self.min_longitude <= longitude <= self.max_longitude
        )


@dataclass
class HotspotZone:
    """A cell ranked by supply/demand imbalance."""

    h3_index: str
    center_latitude: float
    center_longitude: float
    demand_level: DemandLevel
    predicted_rides: float
    current_drivers: int
    needed_drivers: int
    gap: int
    expected_surge: float
    hotspot_score: float
    valid_until: datetime


@dataclass
class DemandHeatmap:
    """Zones with a forecast inside a requested bounding box."""

    generated_at: datetime
    timeframe: PredictionTimeframe
    bounding_box: BoundingBox
    zones: List[HotspotZone] = field(default_factory=list)


@dataclass
class DriverRepositionRecommendation:
    """Suggested target cell for an idle driver."""

    driver_id: UUID
    current_h3_index: str
    target_h3_index: str
    target_latitude: float
    target_longitude: float
    distance_km: float
    priority: int
    expected_rides: float
    expected_earnings: float
    expected_surge: float
    recommended_arrival: datetime
    reason: str


@dataclass
class RepositionRecommendations:
    """Recommendations for one driver plus the state of their current cell."""

    current_zone: Optional[HotspotZone]
    recommendations: List[DriverRepositionRecommendation] = field(
        default_factory=list
    )
    estimated_earnings: float = 0.0
