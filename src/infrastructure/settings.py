"""Forecast engine and collaborator settings sections."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.domain.entities.demand import BoundingBox, PredictionTimeframe
from src.domain.entities.forecast_model import ForecastConfig, ModelWeights


class RefreshArea(BaseModel):
    """Bounding box refreshed periodically by the background worker."""

    name: str = "default"
    min_latitude: float
    min_longitude: float
    max_latitude: float
    max_longitude: float

    def to_domain(self) -> BoundingBox:
        return BoundingBox(
            min_latitude=self.min_latitude,
            min_longitude=self.min_longitude,
            max_latitude=self.max_latitude,
            max_longitude=self.max_longitude,
        )


class ForecastSettings(BaseSettings):
    """Forecasting engine configuration settings."""

    cell_resolution: int = Field(
        default=7, ge=0, le=15, description="H3 resolution of forecast cells"
    )
    training_weeks: int = Field(
        default=8, gt=0, description="Weeks of history used for the baseline"
    )
    weather_enabled: bool = Field(default=True, description="Use weather signals")
    events_enabled: bool = Field(default=True, description="Use special events")
    min_confidence: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Confidence below which to warn"
    )
    supported_timeframes: List[PredictionTimeframe] = Field(
        default_factory=lambda: list(PredictionTimeframe),
        description="Timeframes accepted by the engine",
    )
    local_timezone: str = Field(
        default="UTC", description="IANA timezone used for calendar features"
    )
    collaborator_timeout_seconds: float = Field(
        default=2.0, gt=0, description="Timeout of optional collaborator calls"
    )
    max_concurrency: int = Field(
        default=16, gt=0, description="Concurrent cell forecasts per area"
    )
    max_area_km2: float = Field(
        default=2500.0, gt=0, description="Largest bounding box forecast per request"
    )
    base_fare_per_ride: float = Field(
        default=15.0, ge=0, description="Base fare used for earnings estimates"
    )
    average_speed_kmh: float = Field(
        default=30.0, gt=0, description="Average speed used for arrival estimates"
    )
    prediction_retention_days: int = Field(
        default=7, gt=0, description="Days predictions are kept before cleanup"
    )
    refresh_areas: List[RefreshArea] = Field(
        default_factory=list,
        description="Bounding boxes refreshed by the periodic forecast task",
    )
    refresh_timeframes: List[PredictionTimeframe] = Field(
        default_factory=lambda: [PredictionTimeframe.MIN_30],
        description="Timeframes generated by the periodic forecast task",
    )

    model_config = SettingsConfigDict(
        env_prefix="FORECAST_", case_sensitive=False, extra="ignore"
    )

    @field_validator("supported_timeframes")
    @classmethod
    def _require_timeframes(
        cls, value: List[PredictionTimeframe]
    ) -> List[PredictionTimeframe]:
        if not value:
            raise ValueError("At least one timeframe must be supported")
        return value

    def to_forecast_config(self) -> ForecastConfig:
        """Build the immutable engine configuration."""
        return ForecastConfig(
            h3_resolution=self.cell_resolution,
            training_weeks=self.training_weeks,
            weather_enabled=self.weather_enabled,
            events_enabled=self.events_enabled,
            min_confidence=self.min_confidence,
            supported_timeframes=tuple(self.supported_timeframes),
            local_timezone=self.local_timezone,
            collaborator_timeout_seconds=self.collaborator_timeout_seconds,
            max_concurrency=self.max_concurrency,
            max_area_km2=self.max_area_km2,
            base_fare_per_ride=self.base_fare_per_ride,
            average_speed_kmh=self.average_speed_kmh,
            weights=ModelWeights(),
        )


class CollaboratorSettings(BaseSettings):
    """External collaborator configuration settings."""

    weather_url: Optional[str] = Field(
        default=None, description="Weather service base URL (disabled when unset)"
    )
    driver_location_url: Optional[str] = Field(
        default=None,
        description="Driver location service base URL (disabled when unset)",
    )
    request_timeout_seconds: float = Field(
        default=2.0, gt=0, description="HTTP timeout of collaborator requests"
    )

    model_config = SettingsConfigDict(
        env_prefix="COLLAB_", case_sensitive=False, extra="ignore"
    )

