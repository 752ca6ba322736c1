"""
DTOs Package - Application Layer

This package contains Data Transfer Objects (DTOs) used for data exchange
between the application layer and the presentation layer.
"""

from .demand_dto import (
    AreaPredictionRequestDTO,
    AreaPredictionResponseDTO,
    BoundingBoxDTO,
    DemandHeatmapDTO,
    DemandHeatmapRequestDTO,
    DemandPredictionDTO,
    DriverRepositionRecommendationDTO,
    FeatureContributionsDTO,
    HistoricalDemandDTO,
    HotspotsResponseDTO,
    HotspotZoneDTO,
    PredictDemandRequestDTO,
    RecordActualRidesRequestDTO,
    RecordDemandRequestDTO,
    RepositionRequestDTO,
    RepositionResponseDTO,
)
from .event_dto import (
    CreateSpecialEventRequestDTO,
    ForecastAccuracyDTO,
    SpecialEventDTO,
    SpecialEventListDTO,
)

__all__ = [
    "AreaPredictionRequestDTO",
    "AreaPredictionResponseDTO",
    "BoundingBoxDTO",
    "CreateSpecialEventRequestDTO",
    "DemandHeatmapDTO",
    "DemandHeatmapRequestDTO",
    "DemandPredictionDTO",
    "DriverRepositionRecommendationDTO",
    "FeatureContributionsDTO",
    "ForecastAccuracyDTO",
    "HistoricalDemandDTO",
    "HotspotsResponseDTO",
    "HotspotZoneDTO",
    "PredictDemandRequestDTO",
    "RecordActualRidesRequestDTO",
    "RecordDemandRequestDTO",
    "RepositionRequestDTO",
    "RepositionResponseDTO",
    "SpecialEventDTO",
    "SpecialEventListDTO",
]
