"""
Domain Entities Package

This package contains the core domain entities and business logic.
"""

from .demand import (
    BoundingBox,
    DemandHeatmap,
    DemandLevel,
    DemandPrediction,
    DriverRepositionRecommendation,
    FeatureContributions,
    ForecastAccuracyMetrics,
    HistoricalDemandRecord,
    HotspotZone,
    PredictionTimeframe,
    RepositionRecommendations,
    SpecialEvent,
)
from .errors import (
    DemandDependencyError,
    DemandOperationError,
    DemandValidationError,
    DomainError,
    PredictionNotFoundError,
)
from .forecast_model import (
    ForecastConfig,
    ModelFeatures,
    ModelPrediction,
    ModelWeights,
    WeatherData,
)

__all__ = [
    "BoundingBox",
    "DemandHeatmap",
    "DemandLevel",
    "DemandPrediction",
    "DriverRepositionRecommendation",
    "FeatureContributions",
    "ForecastAccuracyMetrics",
    "HistoricalDemandRecord",
    "HotspotZone",
    "PredictionTimeframe",
    "RepositionRecommendations",
    "SpecialEvent",
    "ForecastConfig",
    "ModelFeatures",
    "ModelPrediction",
    "ModelWeights",
    "WeatherData",
    "DomainError",
    "DemandValidationError",
    "DemandDependencyError",
    "DemandOperationError",
    "PredictionNotFoundError",
]
