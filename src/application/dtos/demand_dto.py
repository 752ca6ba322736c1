"""
Application DTOs - Demand

Data Transfer Objects for demand forecasting requests and responses,
including area forecasts, hotspots, heatmaps and driver repositioning.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.domain.entities.demand import (
    BoundingBox,
    DemandHeatmap,
    DemandLevel,
    DemandPrediction,
    DriverRepositionRecommendation,
    FeatureContributions,
    HistoricalDemandRecord,
    HotspotZone,
    PredictionTimeframe,
    RepositionRecommendations,
)


class PredictDemandRequestDTO(BaseModel):
    """Request a forecast for the cell containing a coordinate."""

    latitude: float = Field(description="Latitude in decimal degrees")
    longitude: float = Field(description="Longitude in decimal degrees")
    timeframe: PredictionTimeframe = Field(
        default=PredictionTimeframe.MIN_30, description="Forecast horizon"
    )


class BoundingBoxDTO(BaseModel):
    """Geographic rectangle in decimal degrees."""

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

    @classmethod
    def from_domain(cls, box: BoundingBox) -> "BoundingBoxDTO":
        return cls(
            min_latitude=box.min_latitude,
            min_longitude=box.min_longitude,
            max_latitude=box.max_latitude,
            max_longitude=box.max_longitude,
        )


class AreaPredictionRequestDTO(BoundingBoxDTO):
    """Request forecasts for every cell covering a bounding box."""

    timeframe: PredictionTimeframe = Field(
        default=PredictionTimeframe.MIN_30, description="Forecast horizon"
    )


class DemandHeatmapRequestDTO(BoundingBoxDTO):
    """Request the stored forecasts inside a bounding box."""

    timeframe: PredictionTimeframe = Field(
        default=PredictionTimeframe.MIN_30, description="Forecast horizon"
    )
    min_demand_level: Optional[DemandLevel] = Field(
        default=None, description="Only return zones at or above this demand level"
    )


class RepositionRequestDTO(BaseModel):
    """Request repositioning targets for an idle driver."""

    driver_id: UUID
    latitude: float
    longitude: float
    max_distance_km: Optional[float] = Field(
        default=None,
        ge=0,
        allow_inf_nan=False,
        description="Maximum travel distance; defaults to 10 km when omitted or 0",
    )
    limit: Optional[int] = Field(
        default=None, ge=0, description="Maximum number of recommendations (default 3)"
    )


class RecordDemandRequestDTO(BaseModel):
    """Observed demand for a cell, recorded by the ingestion side."""

    h3_index: str = Field(description="Cell identifier")
    ride_requests: int
    completed_rides: int
    available_drivers: int
    avg_wait_time_min: float = 0.0
    surge_multiplier: float = 1.0


class HistoricalDemandDTO(BaseModel):
    """Stored demand observation."""

    id: UUID
    h3_index: str
    timestamp: datetime
    hour: int
    day_of_week: int
    is_holiday: bool
    ride_requests: int
    completed_rides: int
    available_drivers: int
    avg_wait_time_min: float
    surge_multiplier: float
    weather_condition: str
    temperature: Optional[float] = None
    precipitation_mm: Optional[float] = None

    @classmethod
    def from_domain(cls, record: HistoricalDemandRecord) -> "HistoricalDemandDTO":
        return cls(
            id=record.id,
            h3_index=record.h3_index,
            timestamp=record.timestamp,
            hour=record.hour,
            day_of_week=record.day_of_week,
            is_holiday=record.is_holiday,
            ride_requests=record.ride_requests,
            completed_rides=record.completed_rides,
            available_drivers=record.available_drivers,
            avg_wait_time_min=record.avg_wait_time_min,
            surge_multiplier=record.surge_multiplier,
            weather_condition=record.weather_condition,
            temperature=record.temperature,
            precipitation_mm=record.precipitation_mm,
        )


class RecordActualRidesRequestDTO(BaseModel):
    """Observed ride count used to evaluate a past prediction."""

    actual_rides: int = Field(description="Rides observed for the predicted period")


class FeatureContributionsDTO(BaseModel):
    historical_pattern: float
    recent_trend: float
    time_of_day: float
    day_of_week: float
    weather: float
    special_events: float
    seasonal_trend: float

    @classmethod
    def from_domain(
        cls, contributions: FeatureContributions
    ) -> "FeatureContributionsDTO":
        return cls(
            historical_pattern=contributions.historical_pattern,
            recent_trend=contributions.recent_trend,
            time_of_day=contributions.time_of_day,
            day_of_week=contributions.day_of_week,
            weather=contributions.weather,
            special_events=contributions.special_events,
            seasonal_trend=contributions.seasonal_trend,
        )


class DemandPredictionDTO(BaseModel):
    """Forecast for one cell and target time."""

    id: UUID
    h3_index: str
    prediction_time: datetime
    generated_at: datetime
    timeframe: PredictionTimeframe
    predicted_rides: float
    demand_level: DemandLevel
    confidence: float
    lower_bound: float
    upper_bound: float
    recommended_drivers: int
    expected_surge: float
    hotspot_score: float
    reposition_priority: int
    feature_contributions: FeatureContributionsDTO
    actual_rides: Optional[int] = None

    @classmethod
    def from_domain(cls, prediction: DemandPrediction) -> "DemandPredictionDTO":
        return cls(
            id=prediction.id,
            h3_index=prediction.h3_index,
            prediction_time=prediction.prediction_time,
            generated_at=prediction.generated_at,
            timeframe=prediction.timeframe,
            predicted_rides=prediction.predicted_rides,
            demand_level=prediction.demand_level,
            confidence=prediction.confidence,
            lower_bound=prediction.lower_bound,
            upper_bound=prediction.upper_bound,
            recommended_drivers=prediction.recommended_drivers,
            expected_surge=prediction.expected_surge,
            hotspot_score=prediction.hotspot_score,
            reposition_priority=prediction.reposition_priority,
            feature_contributions=FeatureContributionsDTO.from_domain(
                prediction.feature_contributions
            ),
            actual_rides=prediction.actual_rides,
        )


class AreaPredictionResponseDTO(BaseModel):
    """Forecasts produced for an area; failed cells are omitted."""

    timeframe: PredictionTimeframe
    predictions: List[DemandPredictionDTO] = Field(default_factory=list)


class HotspotZoneDTO(BaseModel):
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

    @classmethod
    def from_domain(cls, zone: HotspotZone) -> "HotspotZoneDTO":
        return cls(
            h3_index=zone.h3_index,
            center_latitude=zone.center_latitude,
            center_longitude=zone.center_longitude,
            demand_level=zone.demand_level,
            predicted_rides=zone.predicted_rides,
            current_drivers=zone.current_drivers,
            needed_drivers=zone.needed_drivers,
            gap=zone.gap,
            expected_surge=zone.expected_surge,
            hotspot_score=zone.hotspot_score,
            valid_until=zone.valid_until,
        )


class HotspotsResponseDTO(BaseModel):
    timeframe: PredictionTimeframe
    hotspots: List[HotspotZoneDTO] = Field(default_factory=list)


class DemandHeatmapDTO(BaseModel):
    generated_at: datetime
    timeframe: PredictionTimeframe
    bounding_box: BoundingBoxDTO
    zones: List[HotspotZoneDTO] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, heatmap: DemandHeatmap) -> "DemandHeatmapDTO":
        return cls(
            generated_at=heatmap.generated_at,
            timeframe=heatmap.timeframe,
            bounding_box=BoundingBoxDTO.from_domain(heatmap.bounding_box),
            zones=[HotspotZoneDTO.from_domain(zone) for zone in heatmap.zones],
        )


class DriverRepositionRecommendationDTO(BaseModel):
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

    @classmethod
    def from_domain(
        cls, recommendation: DriverRepositionRecommendation
    ) -> "DriverRepositionRecommendationDTO":
        return cls(
            driver_id=recommendation.driver_id,
            current_h3_index=recommendation.current_h3_index,
            target_h3_index=recommendation.target_h3_index,
            target_latitude=recommendation.target_latitude,
            target_longitude=recommendation.target_longitude,
            distance_km=recommendation.distance_km,
            priority=recommendation.priority,
            expected_rides=recommendation.expected_rides,
            expected_earnings=recommendation.expected_earnings,
            expected_surge=recommendation.expected_surge,
            recommended_arrival=recommendation.recommended_arrival,
            reason=recommendation.reason,
        )


class RepositionResponseDTO(BaseModel):
    current_zone: Optional[HotspotZoneDTO] = None
    recommendations: List[DriverRepositionRecommendationDTO] = Field(
        default_factory=list
    )
    estimated_earnings: float = 0.0

    @classmethod
    def from_domain(cls, result: RepositionRecommendations) -> "RepositionResponseDTO":
        return cls(
            current_zone=(
                HotspotZoneDTO.from_domain(result.current_zone)
                if result.current_zone
                else None
            ),
            recommendations=[
                DriverRepositionRecommendationDTO.from_domain(item)
                for item in result.recommendations
            ],
            estimated_earnings=result.estimated_earnings,
        )
