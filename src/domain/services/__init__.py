"""Domain services package."""

from .demand_classifier import (
    calculate_expected_surge,
    calculate_recommended_drivers,
    classify_demand_level,
)
from .demand_validator import (
    bounding_box_area_km2,
    validate_bounding_box,
    validate_bounding_box_area,
    validate_coordinates,
    validate_positive,
)
from .hotspot_ranker import (
    calculate_distance_adjusted_priority,
    calculate_hotspot_score,
    calculate_reposition_priority,
    get_reposition_reason,
    haversine_distance,
)
from .prediction_model import DemandPredictionModel

__all__ = [
    "DemandPredictionModel",
    "bounding_box_area_km2",
    "calculate_distance_adjusted_priority",
    "calculate_expected_surge",
    "calculate_hotspot_score",
    "calculate_recommended_drivers",
    "calculate_reposition_priority",
    "classify_demand_level",
    "get_reposition_reason",
    "haversine_distance",
    "validate_bounding_box",
    "validate_bounding_box_area",
    "validate_coordinates",
    "validate_positive",
]
