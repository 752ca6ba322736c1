"""
Domain Entities - Forecast Model

Value objects consumed and produced by the demand prediction model, plus
the immutable engine configuration shared by the feature builder, the
model and the orchestrator.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Tuple

from src.domain.entities.demand import FeatureContributions, PredictionTimeframe
from src.domain.entities.errors import DemandValidationError

WEIGHT_SUM_TOLERANCE = 0.001


@dataclass(frozen=True)
class WeatherData:
    """Current conditions reported by the weather provider."""

    condition_code: int = 0
    condition: str = "unknown"
    temperature: float = 0.0
    precipitation_probability: float = 0.0
    precipitation_mm: float = 0.0


@dataclass(frozen=True)
class ModelWeights:
    """Blend weights of the prediction model."""

    historical_pattern: float = 0.35
    recent_trend: float = 0.25
    time_of_day: float = 0.15
    day_of_week: float = 0.10
    weather: float = 0.08
    events: float = 0.05
    seasonal: float = 0.02

    def __post_init__(self) -> None:
        values = self.as_tuple()
        errors = []
        if any(value <= 0 for value in values):
            errors.append("All model weights must be strictly positive.")
        if not math.isclose(sum(values), 1.0, abs_tol=WEIGHT_SUM_TOLERANCE):
            errors.append("Model weights must sum to 1.0.")
        if errors:
            raise DemandValidationError(
                "Model weights are invalid.", details={"errors": errors}
            )

    def as_tuple(self) -> Tuple[float, ...]:
        return (
            self.historical_pattern,
            self.recent_trend,
            self.time_of_day,
            self.day_of_week,
            self.weather,
            self.events,
            self.seasonal,
        )

    def to_contributions(self) -> FeatureContributions:
        return FeatureContributions(
            historical_pattern=self.historical_pattern,
            recent_trend=self.recent_trend,
            time_of_day=self.time_of_day,
            day_of_week=self.day_of_week,
            weather=self.weather,
            special_events=self.events,
            seasonal_trend=self.seasonal,
        )


@dataclass(frozen=True)
class ForecastConfig:
    """Engine configuration, built once at startup and never mutated."""

    h3_resolution: int = 7
    training_weeks: int = 8
    weather_enabled: bool = True
    events_enabled: bool = True
    min_confidence: float = 0.5
    supported_timeframes: Tuple[PredictionTimeframe, ...] = tuple(PredictionTimeframe)
    local_timezone: str = "UTC"
    collaborator_timeout_seconds: float = 2.0
    max_concurrency: int = 16
    max_area_km2: float = 2500.0
    base_fare_per_ride: float = 15.0
    average_speed_kmh: float = 30.0
    weights: ModelWeights = field(default_factory=ModelWeights)


@dataclass(frozen=True)
class ModelFeatures:
    """Per-call feature vector for one cell and target time."""

    h3_index: str
    target_time: datetime
    hour: int
    day_of_week: int
    is_weekend: bool
    is_holiday: bool
    week_of_year: int
    month: int
    hist_avg_rides: float = 0.0
    hist_std_rides: float = 0.0
    recent_rides_15min: int = 0
    recent_rides_1hr: int = 0
    recent_trend: float = 0.0
    neighbor_demand_avg: float = 0.0
    current_drivers: int = 0
    weather_code: int = 0
    temperature: float = 0.0
    precipitation_probability: float = 0.0
    event_nearby: bool = False
    event_scale: int = 0


@dataclass(frozen=True)
class ModelPrediction:
    """Model output with its confidence interval."""

    predicted_rides: float
    confidence: float
    lower_bound: float
    upper_bound: float
