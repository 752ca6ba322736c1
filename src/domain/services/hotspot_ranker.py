"""Domain service helpers ranking hotspots and repositioning targets."""

import math

from src.domain.entities.demand import DemandLevel, HotspotZone

EARTH_RADIUS_KM = 6371.0
SCORE_PER_RIDE_RATIO = 20.0
SCORE_PER_TREND_UNIT = 3.0
SCORE_PENALTY_PER_KM = 5.0
MAX_HOTSPOT_SCORE = 100.0

HIGH_SURGE_THRESHOLD = 2.0
DRIVER_SHORTAGE_GAP = 8


def calculate_hotspot_score(
    predicted_rides: float, current_drivers: int, trend: float
) -> float:
    """Score in [0, 100] from the demand/supply ratio and the recent trend."""

    score = predicted_rides / max(current_drivers, 1) * SCORE_PER_RIDE_RATIO
    score += trend * SCORE_PER_TREND_UNIT
    if math.isnan(score):
        return 0.0
    return max(0.0, min(MAX_HOTSPOT_SCORE, score))


def calculate_reposition_priority(hotspot_score: float) -> int:
    """Map a score to a priority where 1 is the most urgent and 10 the least."""

    if math.isnan(hotspot_score):
        return 10
    score = max(0.0, min(MAX_HOTSPOT_SCORE, hotspot_score))
    priority = 10 - math.floor(score / 10)
    return max(1, min(10, priority))


def calculate_distance_adjusted_priority(zone: HotspotZone, distance_km: float) -> int:
    adjusted = max(0.0, zone.hotspot_score - SCORE_PENALTY_PER_KM * distance_km)
    return calculate_reposition_priority(adjusted)


def get_reposition_reason(zone: HotspotZone) -> str:
    if zone.expected_surge >= HIGH_SURGE_THRESHOLD:
        return "High surge expected"
    if zone.gap >= DRIVER_SHORTAGE_GAP:
        return "Significant driver shortage"
    if zone.demand_level in (DemandLevel.VERY_HIGH, DemandLevel.EXTREME):
        return "Very high demand predicted"
    return "Better earnings opportunity"


def haversine_distance(
    latitude_1: float, longitude_1: float, latitude_2: float, longitude_2: float
) -> float:
    """Great-circle distance between two points in kilometers."""

    phi_1 = math.radians(latitude_1)
    phi_2 = math.radians(latitude_2)
    delta_phi = math.radians(latitude_2 - latitude_1)
    delta_lambda = math.radians(longitude_2 - longitude_1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi_1) * math.cos(phi_2) * math.sin(delta_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, a)))
