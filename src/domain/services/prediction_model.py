"""
Domain service implementing the weighted multi-factor demand model.

The model blends the historical pattern of a cell with its short-horizon
signal, then applies calendar, weather and event multipliers. It performs
no I/O so it can be exercised directly with hand-built features.
"""

from __future__ import annotations

import math
from datetime import date

from src.domain.entities.forecast_model import (
    ModelFeatures,
    ModelPrediction,
    ModelWeights,
)

TREND_SENSITIVITY = 0.1
MIN_TREND_FACTOR = 0.5
MAX_TREND_FACTOR = 2.0
NEIGHBOR_SPILLOVER_FACTOR = 0.5
HOLIDAY_DAMPENING = 0.7
CONFIDENCE_Z_SCORE = 1.96

SUNDAY = 0
FRIDAY = 5
SATURDAY = 6


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def is_weekend_day(day_of_week: int) -> bool:
    return day_of_week in (SUNDAY, SATURDAY)


def is_holiday(day: date) -> bool:
    """Fixed-date and Thanksgiving holidays that dampen demand."""
    if (day.month, day.day) in ((1, 1), (7, 4), (12, 25)):
        return True
    # Thanksgiving: fourth Thursday of November
    return day.month == 11 and day.weekday() == 3 and 22 <= day.day <= 28


def get_time_multiplier(hour: int, is_weekend: bool) -> float:
    if not is_weekend and 7 <= hour <= 9:
        multiplier = 1.5
    elif not is_weekend and 17 <= hour <= 19:
        multiplier = 1.6
    elif hour >= 22 or hour <= 2:
        multiplier = 1.4 if is_weekend else 1.2
    elif not is_weekend and 11 <= hour <= 14:
        multiplier = 1.1
    else:
        multiplier = 1.0
    return _clamp(multiplier, 1.0, 1.6)


def get_day_multiplier(day_of_week: int) -> float:
    multiplier = {SUNDAY: 0.8, FRIDAY: 1.2, SATURDAY: 1.1}.get(day_of_week, 1.0)
    return _clamp(multiplier, 0.8, 1.2)


def get_weather_multiplier(
    weather_code: int, precipitation_probability: float
) -> float:
    """Rain (codes 4-5), snow (6+) and a likely shower raise demand."""
    if weather_code >= 6:
        multiplier = 1.5
    elif weather_code >= 4:
        multiplier = 1.3
    elif precipitation_probability > 0.7:
        multiplier = 1.2
    else:
        multiplier = 1.0
    return _clamp(multiplier, 1.0, 1.5)


def get_event_multiplier(expected_attendees: int) -> float:
    if expected_attendees > 50000:
        multiplier = 3.0
    elif expected_attendees >= 20000:
        multiplier = 2.5
    elif expected_attendees >= 10000:
        multiplier = 2.0
    elif expected_attendees >= 5000:
        multiplier = 1.5
    elif expected_attendees >= 1000:
        multiplier = 1.3
    else:
        multiplier = 1.1
    return _clamp(multiplier, 1.0, 3.0)


def get_seasonal_multiplier(month: int) -> float:
    if month in (12, 1, 2):
        multiplier = 1.1
    elif month in (6, 7, 8):
        multiplier = 0.95
    else:
        multiplier = 1.0
    return _clamp(multiplier, 0.95, 1.1)


class DemandPredictionModel:
    """Pure function from ``ModelFeatures`` to ``ModelPrediction``."""

    def __init__(self, weights: ModelWeights | None = None) -> None:
        self.weights = weights or ModelWeights()

    def predict(self, features: ModelFeatures) -> ModelPrediction:
        predicted = self._base_estimate(features)

        predicted *= get_time_multiplier(features.hour, features.is_weekend)
        predicted *= get_day_multiplier(features.day_of_week)
        predicted *= get_weather_multiplier(
            features.weather_code, features.precipitation_probability
        )
        if features.event_nearby:
            predicted *= get_event_multiplier(features.event_scale)
        predicted *= get_seasonal_multiplier(features.month)
        if features.is_holiday:
            predicted *= HOLIDAY_DAMPENING

        if not math.isfinite(predicted):
            predicted = 0.0
        predicted = max(0.0, predicted)

        confidence = self._confidence(features)
        margin = CONFIDENCE_Z_SCORE * max(0.0, features.hist_std_rides) * (
            1.0 - confidence
        )

        return ModelPrediction(
            predicted_rides=predicted,
            confidence=confidence,
            lower_bound=max(0.0, predicted - margin),
            upper_bound=predicted + margin,
        )

    def _base_estimate(self, features: ModelFeatures) -> float:
        short_readings = []
        if features.recent_rides_15min > 0:
            short_readings.append(float(features.recent_rides_15min))
        if features.recent_rides_1hr > 0:
            # hourly rate scaled to a 15-minute bucket
            short_readings.append(features.recent_rides_1hr / 4.0)
        short_signal = (
            sum(short_readings) / len(short_readings) if short_readings else 0.0
        )

        if features.hist_avg_rides <= 0 and short_signal <= 0:
            return max(0.0, features.neighbor_demand_avg) * NEIGHBOR_SPILLOVER_FACTOR

        trend_factor = _clamp(
            1.0 + features.recent_trend * TREND_SENSITIVITY,
            MIN_TREND_FACTOR,
            MAX_TREND_FACTOR,
        )
        w_hist = self.weights.historical_pattern
        w_recent = self.weights.recent_trend
        return (
            w_hist * features.hist_avg_rides + w_recent * short_signal * trend_factor
        ) / (w_hist + w_recent)

    @staticmethod
    def _confidence(features: ModelFeatures) -> float:
        confidence = 0.5
        if features.hist_avg_rides > 0:
            confidence += 0.2
        if features.recent_rides_1hr > 0:
            confidence += 0.1
        if features.weather_code > 0:
            confidence += 0.1
        if features.hist_std_rides < 0.5 * features.hist_avg_rides:
            confidence += 0.05
        return min(1.0, confidence)
