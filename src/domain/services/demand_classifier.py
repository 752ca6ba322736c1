"""Domain service helpers deriving operational signals from a forecast."""

import math

from src.domain.entities.demand import DemandLevel

DEFAULT_BASELINE_RIDES = 10.0
RIDES_PER_DRIVER = 2.0
DRIVER_BUFFER = 1.2
MAX_SURGE = 3.0

_LEVEL_CUTOFFS = (
    (0.5, DemandLevel.VERY_LOW),
    (0.8, DemandLevel.LOW),
    (1.2, DemandLevel.NORMAL),
    (1.8, DemandLevel.HIGH),
    (2.5, DemandLevel.VERY_HIGH),
)


def classify_demand_level(
    predicted_rides: float, historical_average: float
) -> DemandLevel:
    """Bucket a prediction by its ratio to the historical baseline.

    A cell without history is compared against a fixed baseline of
    ``DEFAULT_BASELINE_RIDES`` rides.
    """

    baseline = historical_average if historical_average > 0 else DEFAULT_BASELINE_RIDES
    ratio = predicted_rides / baseline
    for cutoff, level in _LEVEL_CUTOFFS:
        if ratio < cutoff:
            return level
    return DemandLevel.EXTREME


def calculate_recommended_drivers(predicted_rides: float) -> int:
    needed = math.ceil(max(0.0, predicted_rides) / RIDES_PER_DRIVER * DRIVER_BUFFER)
    return max(1, needed)


def calculate_expected_surge(predicted_rides: float, available_drivers: int) -> float:
    """Piecewise-linear surge from the demand/supply ratio, capped at 3.0."""

    ratio = predicted_rides / max(available_drivers, 1)
    if not ratio > 1.0:
        return 1.0
    if ratio <= 2.0:
        return 1.0 + (ratio - 1.0) * 0.5
    if ratio <= 3.0:
        return 1.5 + (ratio - 2.0) * 0.5
    return min(MAX_SURGE, 2.0 + (ratio - 3.0) * 0.25)
